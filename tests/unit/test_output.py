"""Unit tests for batch output serializers."""

from __future__ import annotations

import io
import json

from agent_fetch.batch import TaskResult
from agent_fetch.output import (
    resolve_mode,
    sanitize_for_comment,
    task_record,
    write_batch_jsonl,
    write_batch_markdown,
)


def _results() -> list[TaskResult]:
    return [
        TaskResult(index=1, input_url="https://example.com/hello", markdown="# hello\n"),
        TaskResult(index=2, input_url="https://abc.com", error="http request failed: timeout"),
        TaskResult(index=3, input_url="https://example.net/hi", markdown="hi"),
    ]


class TestWriteBatchMarkdown:
    def test_layout(self) -> None:
        out = io.StringIO()
        write_batch_markdown(out, _results())

        assert out.getvalue() == "\n".join(
            [
                "<!-- count: 3, succeeded: 2, failed: 1 -->",
                "<!-- task[1]: https://example.com/hello -->",
                "# hello",
                "<!-- /task[1] -->",
                "",
                "<!-- task[2](failed): https://abc.com -->",
                "<!-- error[2]: http request failed: timeout -->",
                "",
                "<!-- task[3]: https://example.net/hi -->",
                "hi",
                "<!-- /task[3] -->",
                "",
            ]
        )

    def test_error_message_sanitized(self) -> None:
        out = io.StringIO()
        write_batch_markdown(
            out, [TaskResult(index=1, input_url="https://x.com", error="line1\r\nline2 -->")]
        )
        assert "<!-- error[1]: line1  line2 -- > -->" in out.getvalue()


class TestSanitizeForComment:
    def test_replaces_newlines_and_closers(self) -> None:
        assert sanitize_for_comment(" a\nb\rc --> d ") == "a b c -- > d"


class TestResolveMode:
    def test_known_sources(self) -> None:
        assert resolve_mode("http-markdown") == "markdown"
        assert resolve_mode("http-static") == "static"
        assert resolve_mode("browser") == "browser"
        assert resolve_mode("http-raw") == "raw"

    def test_unknown_source_passes_through(self) -> None:
        assert resolve_mode(" custom ") == "custom"


class TestWriteBatchJsonl:
    def test_success_and_failure_records(self) -> None:
        results = [
            TaskResult(
                index=1,
                input_url="https://example.com/hello",
                final_url="https://example.com/final",
                source="http-static",
                markdown="---\ntitle: 'Hello'\ndescription: 'World'\n---\n\n# hello\n",
            ),
            TaskResult(index=2, input_url="https://abc.com", error=" http request failed: timeout "),
        ]
        out = io.StringIO()
        write_batch_jsonl(out, results, include_meta=True)

        lines = out.getvalue().strip().split("\n")
        assert len(lines) == 2

        first = json.loads(lines[0])
        assert first == {
            "seq": 1,
            "url": "https://example.com/hello",
            "resolved_url": "https://example.com/final",
            "resolved_mode": "static",
            "content": "# hello\n",
            "meta": {"title": "Hello", "description": "World"},
        }

        second = json.loads(lines[1])
        assert second == {
            "seq": 2,
            "url": "https://abc.com",
            "error": "http request failed: timeout",
        }

    def test_meta_disabled_keeps_front_matter(self) -> None:
        result = TaskResult(
            index=1,
            input_url="https://example.com/hello",
            source="http-markdown",
            markdown="---\ntitle: 'Hello'\n---\n\n# hello\n",
        )
        record = task_record(result, include_meta=False)

        assert record["resolved_mode"] == "markdown"
        assert record["content"].startswith("---\n")
        assert "meta" not in record

    def test_unknown_front_matter_left_in_content(self) -> None:
        markdown = "---\ntitle: 'Hello'\ndate: '2026-02-22'\n---\n\nBody\n"
        result = TaskResult(index=1, input_url="u", source="http-raw", markdown=markdown)
        record = task_record(result, include_meta=True)

        assert record["content"] == markdown
        assert "meta" not in record

    def test_resolved_url_omitted_when_unchanged(self) -> None:
        result = TaskResult(
            index=1, input_url="https://a.com", final_url="https://a.com", source="browser"
        )
        assert "resolved_url" not in task_record(result, include_meta=True)

    def test_non_ascii_and_html_not_escaped(self) -> None:
        result = TaskResult(
            index=1, input_url="https://a.com", source="http-raw", markdown="<b>中文</b> & more"
        )
        out = io.StringIO()
        write_batch_jsonl(out, [result], include_meta=False)

        line = out.getvalue()
        assert "中文" in line
        assert "<b>" in line and "&" in line
        assert line.endswith("\n")
