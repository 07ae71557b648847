import pytest

import gpx_io
from gpx_cut_pause import default_output_path, main


def times_in(path):
    doc = gpx_io.load(str(path))
    return [p.time_text for _, p in doc.iter_points()]


def test_cli_cuts_pause_and_writes_default_output(gpx_file, make_gpx, capsys):
    path = gpx_file(make_gpx([[
        "2024-05-12T10:00:00Z", "2024-05-12T10:05:00Z", "2024-05-12T10:06:00Z", "2024-05-12T10:10:00Z",
    ]]))

    main([str(path), "2024-05-12 12:04", "2024-05-12 12:07", "--tz", "Europe/Berlin"])

    out_path = path.with_name("hike_cut.gpx")
    assert times_in(out_path) == ["2024-05-12T10:00:00Z", "2024-05-12T10:09:00Z"]
    captured = capsys.readouterr().out
    assert "--- Processing GPX File: hike.gpx ---" in captured
    assert "Removed points:  2" in captured
    assert "Pause cut:       1m" in captured
    assert f"Output written to: {out_path}" in captured


def test_cli_explicit_output_and_encoding(gpx_file, make_gpx, tmp_path):
    path = gpx_file(make_gpx([["2024-05-12T10:00:00Z", "2024-05-12T10:05:00Z"]]))
    out_path = tmp_path / "edited.gpx"

    main([str(path), "2024-05-12T12:04", "2024-05-12T12:06", "--tz", "Europe/Berlin",
          "-o", str(out_path), "--encoding", "UTF16BE", "--no-indent"])

    text = out_path.read_bytes().decode("utf-16-be")
    assert "encoding='UTF-16BE'" in text
    assert "10:05:00Z" not in text


def test_cli_dry_run_writes_nothing(gpx_file, make_gpx, capsys):
    path = gpx_file(make_gpx([["2024-05-12T10:00:00Z", "2024-05-12T10:05:00Z"]]))

    main([str(path), "2024-05-12 10:04", "2024-05-12 10:06", "--tz", "UTC", "--dry-run"])

    assert not path.with_name("hike_cut.gpx").exists()
    assert "Dry run: nothing written." in capsys.readouterr().out


def test_cli_window_outside_track(gpx_file, make_gpx, capsys):
    path = gpx_file(make_gpx([["2024-05-12T10:00:00Z", "2024-05-12T10:05:00Z"]]))

    main([str(path), "2024-05-12 08:00", "2024-05-12 09:00", "--tz", "UTC"])

    assert "Track left unchanged" in capsys.readouterr().out
    assert times_in(path.with_name("hike_cut.gpx")) == ["2024-05-12T10:00:00Z", "2024-05-12T10:05:00Z"]


def test_cli_bad_timestamp_exits_without_writing(gpx_file, make_gpx, capsys):
    path = gpx_file(make_gpx([["2024-05-12T10:00:00Z", "not a time"]]))

    with pytest.raises(SystemExit) as exc:
        main([str(path), "2024-05-12 10:04", "2024-05-12 10:06", "--tz", "UTC"])

    assert exc.value.code == 1
    assert not path.with_name("hike_cut.gpx").exists()
    assert "Error: track 1 segment 1 point 2" in capsys.readouterr().out


def test_cli_missing_input(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path / "*.gpx"), "2024-05-12 10:04", "2024-05-12 10:06"])

    assert exc.value.code == 1
    assert "Error: No file matches" in capsys.readouterr().out


def test_cli_rejects_bad_zone_and_bad_time(gpx_file, make_gpx, capsys):
    path = gpx_file(make_gpx([["2024-05-12T10:00:00Z"]]))

    with pytest.raises(SystemExit):
        main([str(path), "2024-05-12 10:04", "2024-05-12 10:06", "--tz", "Mars/Olympus_Mons"])
    assert "Unknown time zone" in capsys.readouterr().out

    with pytest.raises(SystemExit):
        main([str(path), "10:04", "2024-05-12 10:06", "--tz", "UTC"])
    assert "is not a date-time" in capsys.readouterr().out


def test_cli_warns_when_start_after_end(gpx_file, make_gpx, capsys):
    path = gpx_file(make_gpx([["2024-05-12T10:00:00Z"]]))

    main([str(path), "2024-05-12 10:06", "2024-05-12 10:04", "--tz", "UTC", "--dry-run"])

    assert "START is after END" in capsys.readouterr().out


def test_default_output_path():
    assert default_output_path("/data/walk.gpx") == "/data/walk_cut.gpx"


def test_cli_reads_back_its_own_utf16_output(gpx_file, make_gpx, tmp_path, capsys):
    path = gpx_file(make_gpx([["2024-05-12T10:00:00Z", "2024-05-12T10:05:00Z", "2024-05-12T10:10:00Z"]]))
    first = tmp_path / "first.gpx"
    second = tmp_path / "second.gpx"

    main([str(path), "2024-05-12 10:04", "2024-05-12 10:06", "--tz", "UTC", "-o", str(first), "--encoding", "UTF16LE"])
    main([str(first), "2024-05-12 10:09", "2024-05-12 10:11", "--tz", "UTC", "-o", str(second)])

    assert times_in(second) == ["2024-05-12T10:00:00Z"]
    assert "Error" not in capsys.readouterr().out


def test_cli_unreadable_encoding_exits_cleanly(tmp_path, capsys):
    path = tmp_path / "odd.gpx"
    path.write_bytes(b'<?xml version="1.0" encoding="no-such-codec"?><gpx/>')

    with pytest.raises(SystemExit) as exc:
        main([str(path), "2024-05-12 10:04", "2024-05-12 10:06", "--tz", "UTC"])

    assert exc.value.code == 1
    assert "Error: Could not read" in capsys.readouterr().out
