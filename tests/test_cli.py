import io

import pytest

from tomasim.cli import build_parser, format_settings, format_statistics, main
from tomasim.model import ProcessorConfig, Stats

TRACE = "\n".join(
    [
        "400000 0 1 2 3",
        "400004 1 2 1 3",
        "400008 2 4 2 1",
        "40000c -1 -1 4 2",
    ]
) + "\n"


def _write_trace(tmp_path):
    path = tmp_path / "small.trace"
    path.write_text(TRACE)
    return path


def test_format_settings_defaults():
    text = format_settings(ProcessorConfig())
    assert text.splitlines() == [
        "Processor Settings",
        "R: 8",
        "k0: 1",
        "k1: 2",
        "k2: 3",
        "F: 4",
        "",
    ]


def test_format_settings_uses_given_values():
    text = format_settings(ProcessorConfig(result_buses=2, k0=3, k1=2, k2=1, fetch_width=4))
    assert "R: 2\n" in text
    assert "k0: 3\n" in text
    assert text.endswith("F: 4\n\n")


def test_format_statistics_six_decimals():
    stats = Stats(
        retired_instructions=10,
        cycle_count=20,
        max_dispatch_size=4,
        avg_dispatch_size=1.5,
        avg_fired=0.5,
        avg_retired=0.5,
    )
    lines = format_statistics(stats).splitlines()
    assert lines[0] == "Processor stats:"
    assert lines[1] == "Total instructions: 10"
    assert lines[2] == "Avg Dispatch queue size: 1.500000"
    assert lines[3] == "Maximum Dispatch queue size: 4"
    assert lines[4] == "Avg inst fired per cycle: 0.500000"
    assert lines[6] == "Total run time (cycles): 20"


def test_parser_defaults_match_config():
    args = build_parser().parse_args([])
    defaults = ProcessorConfig()
    assert (args.result_buses, args.k0, args.k1, args.k2, args.fetch_width) == (
        defaults.result_buses,
        defaults.k0,
        defaults.k1,
        defaults.k2,
        defaults.fetch_width,
    )
    assert args.input is None


def test_parser_attached_values():
    args = build_parser().parse_args(["-r2", "-f4", "-j3", "-k2", "-l1"])
    assert (args.result_buses, args.k0, args.k1, args.k2, args.fetch_width) == (2, 3, 2, 1, 4)


def test_parser_lenient_numbers():
    args = build_parser().parse_args(["-r", "3abc", "-f", "xyz"])
    assert args.result_buses == 3
    assert args.fetch_width == 0


def test_help_exits_zero(capsys):
    with pytest.raises(SystemExit) as info:
        main(["-h"])
    assert info.value.code == 0
    assert "Number of result buses" in capsys.readouterr().out


def test_unknown_option_prints_help(capsys):
    with pytest.raises(SystemExit) as info:
        main(["-z"])
    assert info.value.code == 0
    assert "Number of k0 FUs" in capsys.readouterr().out


def test_missing_input_file(tmp_path, capsys):
    missing = tmp_path / "absent.trace"
    assert main(["-i", str(missing), "--output", str(tmp_path / "out")]) == 0
    captured = capsys.readouterr()
    assert f"Failed to open {missing} for reading" in captured.err
    assert not (tmp_path / "out").exists()


def test_invalid_config_rejected(tmp_path, capsys):
    trace = _write_trace(tmp_path)
    assert main(["-f0", "-i", str(trace), "--output", str(tmp_path / "out")]) == 1
    assert "fetch width" in capsys.readouterr().err


def test_run_from_file(tmp_path, capsys):
    trace = _write_trace(tmp_path)
    report = tmp_path / "report.txt"
    assert main(["-r1", "-f2", "-j1", "-k1", "-l1", "-i", str(trace), "--output", str(report)]) == 0
    out = capsys.readouterr().out
    assert out.startswith("Processor Settings\nR: 1\n")
    assert "Total instructions: 4\n" in out
    text = report.read_text()
    assert text.startswith("Processor Settings\n")
    assert "INST\tFETCH\tDISP\tSCHED\tEXEC\tSTATE\n" in text
    assert "Total instructions: 4\n" in text


def test_run_from_stdin_matches_file(tmp_path, capsys, monkeypatch):
    trace = _write_trace(tmp_path)
    file_report = tmp_path / "file.txt"
    main(["-f2", "-i", str(trace), "--output", str(file_report)])
    file_out = capsys.readouterr().out

    monkeypatch.setattr("sys.stdin", io.StringIO(TRACE))
    stdin_report = tmp_path / "stdin.txt"
    assert main(["-f2", "--output", str(stdin_report)]) == 0
    stdin_out = capsys.readouterr().out

    assert stdin_out == file_out
    assert stdin_report.read_text() == file_report.read_text()