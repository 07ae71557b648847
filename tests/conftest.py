import pytest

GPX_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<gpx xmlns="http://www.topografix.com/GPX/1/1" version="1.1" creator="test">
{tracks}
</gpx>
"""


def make_gpx(*tracks):
    """Builds GPX text from tracks given as lists of segments, each a list of time strings."""
    trk_parts = []
    for segments in tracks:
        seg_parts = []
        for times in segments:
            pts = "".join(
                f'<trkpt lat="{45 + i * 0.001:.3f}" lon="7.000"><ele>{100 + i}</ele><time>{t}</time></trkpt>'
                for i, t in enumerate(times)
            )
            seg_parts.append(f"<trkseg>{pts}</trkseg>")
        trk_parts.append(f"<trk><name>Hike</name>{''.join(seg_parts)}</trk>")
    return GPX_TEMPLATE.format(tracks="\n".join(trk_parts))


@pytest.fixture
def gpx_file(tmp_path):
    def _write(text, name="hike.gpx"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture(name="make_gpx")
def make_gpx_fixture():
    return make_gpx
