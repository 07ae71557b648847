import copy
import re
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

TIME_FORMAT = '%Y-%m-%dT%H:%M:%SZ' # ISO 8601 format WITH Zulu timezone
INPUT_TIME_FORMATS = (
    '%Y-%m-%dT%H:%M:%S.%f%z',
    '%Y-%m-%dT%H:%M:%S%z',
    '%Y-%m-%dT%H:%M:%S.%f',
    '%Y-%m-%dT%H:%M:%S',
)
# strptime's %f takes at most 6 digits; .NET writes 7
LONG_FRACTION = re.compile(r'(\.\d{6})\d+')

# --- ERRORS ---

class GpxError(Exception):
    """Base class for everything that can go wrong reading, editing or writing a GPX file."""


class InputResolutionError(GpxError):
    """No file matches the given path or wildcard."""


class GpxParseError(GpxError):
    """The file is not well-formed XML."""


class TimestampParseError(GpxParseError):
    """A track point has a missing or unparseable <time>."""


class GpxWriteError(GpxError):
    """The output file could not be written."""


# --- TIME HELPERS ---

def parse_gpx_time(time_str):
    """
    Parses a GPX time string into a timezone-aware UTC datetime.

    Accepts a trailing 'Z', an explicit offset such as '+02:00', or no zone
    at all (GPX times are UTC by definition), with or without fractional seconds.
    Returns None if the string matches none of the formats.
    """
    if not time_str:
        return None
    time_str_clean = time_str.strip()
    if time_str_clean.endswith('Z'):
        time_str_clean = time_str_clean[:-1] + '+00:00'
    time_str_clean = LONG_FRACTION.sub(r'\1', time_str_clean)

    for fmt in INPUT_TIME_FORMATS:
        try:
            dt = datetime.strptime(time_str_clean, fmt)
        except ValueError:
            continue
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    return None


def format_gpx_time(dt):
    """Formats a datetime as YYYY-MM-DDTHH:MM:SSZ in UTC. Sub-second precision is dropped."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(TIME_FORMAT)


def namespace_of(tag):
    """Returns the namespace URI of a '{uri}local' tag, or '' for an unqualified tag."""
    if tag.startswith('{'):
        return tag[1:].split('}', 1)[0]
    return ''


# --- TYPED TREE ---

class TrackPoint:
    """
    One <trkpt>. Only the timestamp is interpreted; lat/lon, <ele>, <extensions>
    and anything else stay on the wrapped element untouched.
    """

    def __init__(self, element, ns, location=''):
        self.element = element
        self._ns = ns
        self.location = location

    def _time_element(self):
        return self.element.find(f"{{{self._ns}}}time" if self._ns else 'time')

    @property
    def time_text(self):
        time_element = self._time_element()
        if time_element is not None:
            return time_element.text.strip() if time_element.text else None
        # Some converters put the time on the point itself
        return self.element.attrib.get('time')

    @property
    def time(self):
        time_str = self.time_text
        if time_str is None:
            raise TimestampParseError(f"{self.location}: <time> is missing")
        dt = parse_gpx_time(time_str)
        if dt is None:
            raise TimestampParseError(f"{self.location}: cannot parse time {time_str!r}")
        return dt

    @time.setter
    def time(self, dt):
        time_element = self._time_element()
        if time_element is None and 'time' in self.element.attrib:
            self.element.set('time', format_gpx_time(dt))
            return
        if time_element is None:
            time_element = ET.SubElement(self.element, f"{{{self._ns}}}time" if self._ns else 'time')
        time_element.text = format_gpx_time(dt)

    def __repr__(self):
        return f"TrackPoint({self.location}, time={self.time_text!r})"


class TrackSegment:
    """One <trkseg>: an ordered run of track points."""

    def __init__(self, element, ns, location=''):
        self.element = element
        self._ns = ns
        self.location = location

    @property
    def points(self):
        tag = f"{{{self._ns}}}trkpt" if self._ns else 'trkpt'
        return [
            TrackPoint(pt, self._ns, f"{self.location} point {pt_idx + 1}")
            for pt_idx, pt in enumerate(self.element.findall(tag))
        ]

    def remove(self, point):
        self.element.remove(point.element)

    def __len__(self):
        return len(self.points)


class Track:
    """One <trk>: an ordered list of segments."""

    def __init__(self, element, ns, location=''):
        self.element = element
        self._ns = ns
        self.location = location

    @property
    def name(self):
        child = self.element.find(f"{{{self._ns}}}name" if self._ns else 'name')
        return child.text.strip() if child is not None and child.text else None

    @property
    def segments(self):
        tag = f"{{{self._ns}}}trkseg" if self._ns else 'trkseg'
        return [
            TrackSegment(seg, self._ns, f"{self.location} segment {seg_idx + 1}")
            for seg_idx, seg in enumerate(self.element.findall(tag))
        ]


class GpxDocument:
    """A parsed GPX file: the ElementTree plus typed access to its tracks."""

    def __init__(self, tree, source_path=None):
        self.tree = tree
        self.source_path = source_path
        self.ns = namespace_of(tree.getroot().tag)

    @property
    def root(self):
        return self.tree.getroot()

    @property
    def tracks(self):
        tag = f"{{{self.ns}}}trk" if self.ns else 'trk'
        return [
            Track(trk, self.ns, f"track {trk_idx + 1}")
            for trk_idx, trk in enumerate(self.root.findall(tag))
        ]

    def iter_points(self):
        """Yields (segment, point) for every track point, in document order."""
        for trk in self.tracks:
            for seg in trk.segments:
                for point in seg.points:
                    yield seg, point

    def copy(self):
        return GpxDocument(copy.deepcopy(self.tree), self.source_path)

    @classmethod
    def from_string(cls, xml_text):
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise GpxParseError(f"Could not parse XML: {e}") from e
        return cls(ET.ElementTree(root))
