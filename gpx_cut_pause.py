import argparse
import os
import sys
import zoneinfo
from collections import namedtuple
from datetime import datetime, timezone

import gpx_io
from gpx_track_model import GpxError

"""Cut a pause out of a GPX track: drop the points recorded between two local times
and pull every later point back by the length of the gap, so the track reads as if
the break never happened."""

LOCAL_TIME_FORMATS = (
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%dT%H:%M',
)

PruneSummary = namedtuple(
    'PruneSummary',
    ['removed', 'shifted', 'effective_start', 'effective_end', 'offset'],
)

# --- UTILITY FUNCTIONS ---

def to_utc(instant):
    """Naive datetimes are taken as system local time; aware ones keep their zone."""
    if instant.tzinfo is None:
        instant = instant.astimezone()
    return instant.astimezone(timezone.utc)


def parse_local_time(text, tz=None):
    """
    Parses 'YYYY-MM-DD HH:MM[:SS]' (or with a 'T') as a wall-clock time in tz,
    or in the system local zone when tz is None.
    """
    for fmt in LOCAL_TIME_FORMATS:
        try:
            dt = datetime.strptime(text.strip(), fmt)
        except ValueError:
            continue
        if tz is not None:
            return dt.replace(tzinfo=tz)
        return dt.astimezone()
    raise ValueError(f"'{text}' is not a date-time like 'YYYY-MM-DD HH:MM[:SS]'")


def format_duration(td):
    """Converts a timedelta into Hh Mm Ss format."""
    seconds = int(td.total_seconds())
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or (hours > 0 and secs == 0):
        parts.append(f"{minutes}m")
    if secs > 0 or (not hours and not minutes):
        parts.append(f"{secs}s")
    return " ".join(parts)


def default_output_path(input_path):
    base, ext = os.path.splitext(input_path)
    return f"{base}_cut{ext}"

# --- MAIN LOGIC ---

def cut_window(document, start, end):
    """
    Removes every track point with start <= time <= end and shifts every point
    after end back by the span between the first and last removed point.

    The window state is shared by the whole document, not reset per segment or
    track: once a point has been removed anywhere, all later points past `end`
    are shifted, whichever track they are in. Segments and tracks are kept even
    when they end up empty. A start after end matches nothing.

    Raises TimestampParseError on the first point whose time is missing or
    unparseable; points already handled stay edited.
    """
    start_utc = to_utc(start)
    end_utc = to_utc(end)

    window_start_seen = None
    window_end_seen = None
    offset = None
    removed = 0
    shifted = 0

    for segment, point in document.iter_points():
        point_time = point.time

        if point_time <= end_utc:
            if point_time >= start_utc:
                if window_start_seen is None:
                    window_start_seen = point_time
                window_end_seen = point_time
                offset = point_time - window_start_seen
                segment.remove(point)
                removed += 1
        elif offset is not None:
            point.time = point_time - offset
            shifted += 1

    return PruneSummary(removed, shifted, window_start_seen, window_end_seen, offset)


def prune(document, start, end, copy_document=False):
    """
    Cuts the [start, end] window out of the document and returns the edited document.
    With copy_document the input is left alone and an edited clone is returned.
    """
    if copy_document:
        document = document.copy()
    cut_window(document, start, end)
    return document


def process_gpx_file(input_path, start, end, output_path=None, encoding=gpx_io.TextEncoding.UTF8,
                     indent=True, dry_run=False):
    """Loads, cuts and saves one GPX file, reporting progress to the console."""
    document = gpx_io.load(input_path)
    print(f"--- Processing GPX File: {os.path.basename(document.source_path)} ---")
    print(f"Requested window: {start:%Y-%m-%d %H:%M:%S %Z} to {end:%Y-%m-%d %H:%M:%S %Z}")

    tracks = document.tracks
    if not tracks:
        print("No <trk> elements found. Nothing to cut.")

    summary = cut_window(document, start, end)

    if summary.removed == 0:
        print("No track points fall inside the window. Track left unchanged.")
    else:
        print(f"  Removed points:  {summary.removed}")
        print(f"  Effective window (UTC): {summary.effective_start:%H:%M:%S} to {summary.effective_end:%H:%M:%S}")
        print(f"  Pause cut:       {format_duration(summary.offset)}")
        print(f"  Shifted points:  {summary.shifted}")

    if dry_run:
        print("\nDry run: nothing written.")
        return summary

    if output_path is None:
        output_path = default_output_path(document.source_path)
    gpx_io.save(document, output_path, encoding=encoding, indent=indent)
    print(f"\nOutput written to: {output_path}")
    return summary


def main(argv=None):
    """Parses command-line arguments and initiates the process."""
    parser = argparse.ArgumentParser(
        description="Removes the track points recorded during a pause and closes the time gap they leave."
    )
    parser.add_argument(
        "gpx_file",
        help="Path to the input GPX file (.gpx). Wildcards are allowed; the first match is used."
    )
    parser.add_argument(
        "start",
        help="Local start of the pause, e.g. '2024-05-12 10:02' or '2024-05-12T10:02:30'."
    )
    parser.add_argument(
        "end",
        help="Local end of the pause, same format as START."
    )
    parser.add_argument(
        "-o", "--output",
        help="Path for the edited GPX file. Default: <input>_cut.gpx next to the input."
    )
    parser.add_argument(
        "--tz",
        help="IANA time zone for START and END, e.g. 'Europe/Athens'. Default: the system local zone."
    )
    parser.add_argument(
        "--encoding",
        default="UTF8",
        choices=list(gpx_io.TextEncoding.__members__),
        help="Text encoding of the output file. Default: UTF8."
    )
    parser.add_argument(
        "--no-indent",
        action="store_true",
        help="Write the XML as-is instead of pretty-printing it."
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be cut without writing anything."
    )

    args = parser.parse_args(argv)

    tz = None
    if args.tz:
        try:
            tz = zoneinfo.ZoneInfo(args.tz)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError):
            print(f"Error: Unknown time zone '{args.tz}'.")
            sys.exit(1)

    try:
        start = parse_local_time(args.start, tz)
        end = parse_local_time(args.end, tz)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if start > end:
        print("Warning: START is after END. No points will be removed.")

    try:
        process_gpx_file(
            args.gpx_file,
            start,
            end,
            output_path=args.output,
            encoding=gpx_io.TextEncoding[args.encoding],
            indent=not args.no_indent,
            dry_run=args.dry_run,
        )
    except GpxError as e:
        print(f"Error: {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
