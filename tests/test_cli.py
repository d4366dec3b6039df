"""Tests for the command-line interface.

WHY: The CLI is the offline entry point to the same pipeline the service
runs. These tests replay recordings end to end and check the exit codes
for bad input, so script users get a clear failure instead of an empty
export.

HOW: main() is called with an explicit argv; stdout and stderr are
captured with capsys. The transcript store client is replaced with an
in-memory fake for --save.
"""

from __future__ import annotations

import json

import pytest

from transcript_refiner import cli
from transcript_refiner.core.ir import SaveReceipt
from transcript_refiner.store.client import TranscriptStoreError

SAMPLE_CLEANED = "So I think the plan is good, Okay thanks, See you tomorrow."


class _FakeStoreClient:
    instances = []
    error = None

    def __init__(self):
        self.saved = []
        _FakeStoreClient.instances.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def save_transcript(self, original, cleaned):
        if _FakeStoreClient.error is not None:
            raise _FakeStoreClient.error
        self.saved.append((original, cleaned))
        return SaveReceipt(id="99")


@pytest.fixture
def fake_store_client(monkeypatch):
    _FakeStoreClient.instances = []
    _FakeStoreClient.error = None
    monkeypatch.setattr(cli, "TranscriptStoreClient", _FakeStoreClient)
    return _FakeStoreClient


class TestReplay:

    def test_recording_to_stdout_and_exports(self, write_recording, sample_records, tmp_path, capsys):
        path = write_recording(sample_records)
        out_dir = tmp_path / "out"

        cli.main([str(path), "--tone", "none", "--output-dir", str(out_dir)])

        captured = capsys.readouterr()
        assert captured.out == SAMPLE_CLEANED + "\n"
        assert "Repeated detected: the" in captured.err
        assert "Done! Saved 2 file(s)" in captured.err

        text = (out_dir / "dictation-transcript.txt").read_text(encoding="utf-8")
        assert text.startswith("=== ORIGINAL TRANSCRIPT ===\num so i think the the plan is good")
        assert "=== CLEANED TRANSCRIPT (none) ===\n" + SAMPLE_CLEANED in text
        data = json.loads((out_dir / "dictation-transcript.json").read_text(encoding="utf-8"))
        assert data["cleaned"] == SAMPLE_CLEANED

    def test_second_run_does_not_overwrite(self, write_recording, sample_records, tmp_path):
        path = write_recording(sample_records)
        cli.main([str(path), "--formats", "export_text"])
        cli.main([str(path), "--formats", "export_text"])
        assert (tmp_path / "dictation-transcript.txt").exists()
        assert (tmp_path / "dictation-transcript-2.txt").exists()
        assert not (tmp_path / "dictation-transcript.json").exists()

    def test_restart_limit_stops_at_stream_end(self, write_recording, sample_records, capsys):
        path = write_recording(sample_records)
        cli.main([str(path), "--tone", "none", "--max-restarts", "0", "--formats", "export_text"])
        captured = capsys.readouterr()
        assert captured.out == "So I think the plan is good, Okay thanks.\n"
        assert "Stream ended after 0 restarts." in captured.err

    def test_plain_text_input(self, tmp_path, capsys):
        path = tmp_path / "note.txt"
        path.write_text("um hello hello world", encoding="utf-8")
        cli.main([str(path), "--tone", "none", "--formats", "export_json"])
        assert capsys.readouterr().out == "Hello world.\n"
        assert (tmp_path / "note-transcript.json").exists()

    def test_dictation_flag(self, tmp_path, capsys):
        path = tmp_path / "note.txt"
        path.write_text("yes comma please", encoding="utf-8")
        cli.main([str(path), "--tone", "none", "--dictation", "--formats", "export_text"])
        assert capsys.readouterr().out == "Yes, please.\n"


class TestFailures:

    def test_missing_file(self, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            cli.main([str(tmp_path / "nope.jsonl")])
        assert excinfo.value.code == 1

    def test_unsupported_extension(self, tmp_path, capsys):
        path = tmp_path / "audio.wav"
        path.write_bytes(b"RIFF")
        with pytest.raises(SystemExit) as excinfo:
            cli.main([str(path)])
        assert excinfo.value.code == 1
        assert "Unsupported input" in capsys.readouterr().err

    def test_unknown_format(self, write_recording, sample_records, capsys):
        path = write_recording(sample_records)
        with pytest.raises(SystemExit) as excinfo:
            cli.main([str(path), "--formats", "export_text,docx"])
        assert excinfo.value.code == 1
        assert "docx" in capsys.readouterr().err

    def test_bad_record(self, write_recording, capsys):
        path = write_recording([{"type": "result"}], name="broken.jsonl")
        with pytest.raises(SystemExit) as excinfo:
            cli.main([str(path)])
        assert excinfo.value.code == 1
        assert "line 1" in capsys.readouterr().err

    def test_unknown_tone_rejected_by_argparse(self, write_recording, sample_records):
        path = write_recording(sample_records)
        with pytest.raises(SystemExit) as excinfo:
            cli.main([str(path), "--tone", "pirate"])
        assert excinfo.value.code == 2


class TestSave:

    def test_save_sends_pair(self, write_recording, sample_records, fake_store_client, capsys):
        path = write_recording(sample_records)
        cli.main([str(path), "--tone", "none", "--save", "--formats", "export_text"])

        [client] = fake_store_client.instances
        assert client.saved == [(
            "um so i think the the plan is good okay thanks see you tomorrow",
            SAMPLE_CLEANED,
        )]
        assert "id: 99" in capsys.readouterr().err

    def test_save_failure_exits(self, write_recording, sample_records, fake_store_client, capsys):
        fake_store_client.error = TranscriptStoreError(500, "Could not save")
        path = write_recording(sample_records)
        with pytest.raises(SystemExit) as excinfo:
            cli.main([str(path), "--save", "--formats", "export_text"])
        assert excinfo.value.code == 1
        assert "Could not save" in capsys.readouterr().err
