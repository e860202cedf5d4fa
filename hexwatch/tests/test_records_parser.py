import json
import tempfile
import unittest
from pathlib import Path

from hexwatch.models import EventKind
from hexwatch.parsers.records import iter_events, parse_line


class RecordParserTests(unittest.TestCase):
    def test_maps_on_disk_types_to_event_kinds(self) -> None:
        expected = {
            "user": EventKind.USER_MESSAGE,
            "assistant": EventKind.ASSISTANT_MESSAGE,
            "tool_use": EventKind.TOOL_INVOCATION,
            "tool_result": EventKind.TOOL_RESULT,
            "tool_invocation": EventKind.TOOL_INVOCATION,
        }
        for raw_type, kind in expected.items():
            event = parse_line(json.dumps({"type": raw_type, "timestamp": "2026-02-16T10:00:00Z"}))
            self.assertIsNotNone(event, raw_type)
            assert event is not None
            self.assertEqual(event.kind, kind)

    def test_copies_cwd_branch_and_message(self) -> None:
        event = parse_line(
            json.dumps(
                {
                    "type": "assistant",
                    "timestamp": "2026-02-16T10:00:00Z",
                    "cwd": "/home/dev/project",
                    "gitBranch": "main",
                    "message": {
                        "role": "assistant",
                        "model": "claude-sonnet",
                        "usage": {"input_tokens": 12, "output_tokens": 34},
                        "content": [{"type": "text", "text": "hi"}],
                    },
                }
            )
        )
        assert event is not None
        self.assertEqual(event.workingDirectory, "/home/dev/project")
        self.assertEqual(event.branchName, "main")
        self.assertEqual(event.message.role, "assistant")
        self.assertEqual(event.assistant_model(), "claude-sonnet")
        self.assertEqual(event.token_usage(), (12, 34))
        self.assertIsNone(event.file_path())

    def test_file_path_accessor_reads_dict_content(self) -> None:
        event = parse_line(
            json.dumps(
                {
                    "type": "tool_result",
                    "timestamp": "2026-02-16T10:00:00Z",
                    "message": {"role": "user", "content": {"tool": "Write", "file_path": "/tmp/a.py"}},
                }
            )
        )
        assert event is not None
        self.assertEqual(event.file_path(), "/tmp/a.py")
        self.assertEqual(event.tool_name(), "Write")

    def test_rejects_malformed_and_unknown_lines(self) -> None:
        self.assertIsNone(parse_line(""))
        self.assertIsNone(parse_line("   \n"))
        self.assertIsNone(parse_line("this is not json"))
        self.assertIsNone(parse_line('{"type": "user", "timestamp": '))
        self.assertIsNone(parse_line("[1, 2, 3]"))
        self.assertIsNone(parse_line(json.dumps({"type": "summary", "summary": "x"})))
        self.assertIsNone(parse_line(json.dumps({"timestamp": "2026-02-16T10:00:00Z"})))

    def test_missing_timestamp_becomes_empty_string(self) -> None:
        event = parse_line(json.dumps({"type": "user", "timestamp": 12345}))
        assert event is not None
        self.assertEqual(event.timestamp, "")

    def test_iter_events_keeps_file_order_and_skips_garbage(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "s.jsonl"
        path.write_text(
            "\n".join(
                [
                    json.dumps({"type": "user", "timestamp": "2026-02-16T10:00:02Z"}),
                    "garbage",
                    json.dumps({"type": "assistant", "timestamp": "2026-02-16T10:00:01Z"}),
                    '{"type": "user", "timest',
                ]
            ),
            encoding="utf-8",
        )

        events = list(iter_events(path))

        self.assertEqual([e.timestamp for e in events], ["2026-02-16T10:00:02Z", "2026-02-16T10:00:01Z"])


if __name__ == "__main__":
    unittest.main()
