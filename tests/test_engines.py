import sys
from pathlib import Path

from scenario_transcriber.engines import (
    AudioNormalizer,
    ProcessResult,
    WhisperTranscriber,
    normalized_path_for,
    run_process,
    transcript_path_for,
)
from scenario_transcriber.engines import normalizer as normalizer_module


def test_run_process_captures_output():
    result = run_process([sys.executable, "-c", "import sys; print('hi'); print('warn', file=sys.stderr)"])

    assert result.ok
    assert result.returncode == 0
    assert result.stdout.strip() == "hi"
    assert result.stderr.strip() == "warn"


def test_run_process_reports_non_zero_exit():
    result = run_process([sys.executable, "-c", "import sys; sys.stderr.write('bad input'); sys.exit(3)"])

    assert not result.ok
    assert result.returncode == 3
    assert "bad input" in result.describe()


def test_run_process_reports_missing_executable(tmp_path):
    result = run_process([str(tmp_path / "no-such-engine")])

    assert not result.ok
    assert result.returncode is None
    assert "could not be started" in result.describe()


def test_run_process_timeout():
    result = run_process([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2)

    assert result.timed_out
    assert not result.ok
    assert "timed out" in result.describe()


def test_derived_file_names():
    source = Path("/data/Item1/rec 1.wav")
    assert normalized_path_for(source) == Path("/data/Item1/rec 1.san.wav")
    assert transcript_path_for(normalized_path_for(source)) == Path("/data/Item1/rec 1.san.txt")
    assert transcript_path_for(source, Path("/out")) == Path("/out/rec 1.txt")


def test_normalizer_arguments():
    args = AudioNormalizer("/usr/bin/ffmpeg").build_args(Path("/a/in.mp3"), Path("/a/in.san.wav"))

    assert args[0] == "/usr/bin/ffmpeg"
    assert args[args.index("-i") + 1] == "/a/in.mp3"
    assert args[args.index("-ac") + 1] == "1"
    assert args[args.index("-ar") + 1] == "16000"
    assert args[args.index("-c:a") + 1] == "pcm_s16le"
    assert args[-1] == "/a/in.san.wav"


def test_normalizer_returns_none_on_failure(monkeypatch, tmp_path):
    source = tmp_path / "rec.wav"
    source.write_bytes(b"")
    monkeypatch.setattr(
        normalizer_module, "run_process", lambda args, timeout=None: ProcessResult(args=args, returncode=1)
    )

    assert AudioNormalizer().normalize(source) is None


def test_normalizer_returns_target_on_success(monkeypatch, tmp_path):
    source = tmp_path / "rec.wav"
    source.write_bytes(b"")
    seen = {}

    def fake_run(args, timeout=None):
        seen["timeout"] = timeout
        Path(args[-1]).write_bytes(b"RIFF")
        return ProcessResult(args=args, returncode=0)

    monkeypatch.setattr(normalizer_module, "run_process", fake_run)

    assert AudioNormalizer(timeout=60).normalize(source) == tmp_path / "rec.san.wav"
    assert seen["timeout"] == 60


def test_whisper_arguments():
    transcriber = WhisperTranscriber(
        whisper_bin="whisper", model_name="large-v3", language="Spanish", initial_prompt="QSL QRV", model_dir="/models"
    )
    args = transcriber.build_args(Path("/a/rec.san.wav"), Path("/a"))

    assert args[:2] == ["whisper", "/a/rec.san.wav"]
    assert args[args.index("--model") + 1] == "large-v3"
    assert args[args.index("--language") + 1] == "Spanish"
    assert args[args.index("--output_format") + 1] == "txt"
    assert args[args.index("--output_dir") + 1] == "/a"
    assert args[args.index("--initial_prompt") + 1] == "QSL QRV"
    assert args[args.index("--model_dir") + 1] == "/models"


def test_whisper_arguments_without_prompt():
    args = WhisperTranscriber(initial_prompt=None).build_args(Path("/a/rec.wav"), Path("/a"))

    assert "--initial_prompt" not in args
    assert "--model_dir" not in args
