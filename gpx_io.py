import codecs
import copy
import enum
import glob
import io
import os
import re
import xml.etree.ElementTree as ET

from gpx_track_model import GpxDocument, GpxParseError, GpxWriteError, InputResolutionError

XML_DECL_ENCODING = re.compile(rb"""^\s*<\?xml[^>]*?encoding\s*=\s*['"]([A-Za-z0-9._-]+)['"]""")


class TextEncoding(enum.Enum):
    """Text encodings the saver can write, by their IANA names (Python codecs accept them too)."""
    ASCII = 'US-ASCII'
    UTF8 = 'UTF-8'
    UTF16LE = 'UTF-16LE'
    UTF16BE = 'UTF-16BE'
    UTF32 = 'UTF-32'
    UTF7 = 'UTF-7'

    @classmethod
    def from_name(cls, name):
        """Looks up an encoding by member name ('UTF8') or IANA name ('utf-8'), ignoring case and dashes."""
        key = name.strip().upper().replace('-', '').replace('_', '')
        for member in cls:
            if key in (member.name, member.value.replace('-', '')):
                return member
        raise ValueError(f"Unknown text encoding '{name}'. Choose from: {', '.join(cls.__members__)}")


def resolve_input_path(path_or_wildcard):
    """
    Resolves a path that may contain shell wildcards to exactly one file.
    If several files match, the first in sorted order wins.
    """
    pattern = os.path.expanduser(path_or_wildcard)
    if any(c in pattern for c in '*?['):
        matches = sorted(p for p in glob.glob(pattern) if os.path.isfile(p))
    else:
        matches = [pattern] if os.path.isfile(pattern) else []

    if not matches:
        raise InputResolutionError(f"No file matches '{path_or_wildcard}'")
    return matches[0]


def sniff_encoding(raw):
    """
    Works out the text encoding of raw XML bytes: BOM first, then the byte pattern
    of a BOM-less UTF-16 '<?', then the XML declaration, defaulting to UTF-8.
    """
    if raw.startswith((codecs.BOM_UTF32_LE, codecs.BOM_UTF32_BE)):
        return 'UTF-32'
    if raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return 'UTF-16'
    if raw.startswith(b'<\x00?\x00'):
        return 'UTF-16LE'
    if raw.startswith(b'\x00<\x00?'):
        return 'UTF-16BE'
    if raw.startswith(codecs.BOM_UTF8):
        return 'UTF-8-SIG'
    match = XML_DECL_ENCODING.match(raw)
    return match.group(1).decode('ascii') if match else 'UTF-8'


def _register_namespaces(xml_text):
    # Without this ElementTree writes the default GPX namespace back out as ns0:
    root_started = False
    for event, item in ET.iterparse(io.StringIO(xml_text), events=('start-ns', 'start')):
        if event == 'start':
            root_started = True
            continue
        prefix, uri = item
        # A nested default namespace (Garmin extensions) must not steal the root's '' prefix
        if prefix == '' and root_started:
            continue
        # ns0, ns1... are reserved by ElementTree and get regenerated anyway
        if re.match(r'ns\d+$', prefix):
            continue
        ET.register_namespace(prefix, uri)


def load(path_or_wildcard):
    """Resolves the path and parses the GPX file into a GpxDocument."""
    gpx_path = resolve_input_path(path_or_wildcard)
    with open(gpx_path, 'rb') as f:
        raw = f.read()

    encoding = sniff_encoding(raw)
    try:
        # expat only reads a handful of encodings itself, so decode here and hand it text
        xml_text = raw.decode(encoding).lstrip('\ufeff')
        _register_namespaces(xml_text)
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise GpxParseError(f"Could not parse XML in '{gpx_path}': {e}") from e
    except (LookupError, ValueError) as e:
        raise GpxParseError(f"Could not read '{gpx_path}' as {encoding}: {e}") from e
    return GpxDocument(ET.ElementTree(root), source_path=gpx_path)


def save(document, path, encoding=TextEncoding.UTF8, indent=True):
    """
    Writes the document to path with an XML declaration in the given encoding.
    Characters the encoding cannot represent become character references.
    Indenting works on a copy; the in-memory document keeps its whitespace.
    """
    if isinstance(encoding, str):
        encoding = TextEncoding.from_name(encoding)

    tree = document.tree
    if indent:
        tree = copy.deepcopy(tree)
        ET.indent(tree, space="  ", level=0)

    try:
        tree.write(path, encoding=encoding.value, xml_declaration=True)
    except OSError as e:
        raise GpxWriteError(f"Error writing output file '{path}': {e}") from e
    return path
