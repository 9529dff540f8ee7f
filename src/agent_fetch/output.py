"""Batch result serializers.

Two output formats are supported:
- markdown: one document with HTML comment markers around every task
- jsonl: one JSON object per task, in input order
"""

from __future__ import annotations

import json
from typing import Any, TextIO

from agent_fetch.batch import TaskResult, failed_count
from agent_fetch.constants import (
    SOURCE_BROWSER,
    SOURCE_HTTP_MARKDOWN,
    SOURCE_HTTP_RAW,
    SOURCE_HTTP_STATIC,
)
from agent_fetch.frontmatter import split_injected_meta

_RESOLVED_MODES = {
    SOURCE_HTTP_MARKDOWN: "markdown",
    SOURCE_HTTP_STATIC: "static",
    SOURCE_BROWSER: "browser",
    SOURCE_HTTP_RAW: "raw",
}


def sanitize_for_comment(text: str) -> str:
    """Make text safe to embed in a single-line HTML comment."""
    text = text.replace("\r", " ").replace("\n", " ")
    return text.replace("-->", "-- >").strip()


def resolve_mode(source: str) -> str:
    """Map a strategy tag to the short mode name used in JSONL output."""
    source = source.strip()
    return _RESOLVED_MODES.get(source, source)


def write_batch_markdown(out: TextIO, results: list[TaskResult]) -> None:
    total = len(results)
    failed = failed_count(results)
    out.write(f"<!-- count: {total}, succeeded: {total - failed}, failed: {failed} -->\n")

    for i, result in enumerate(results):
        if i > 0:
            out.write("\n")

        url = sanitize_for_comment(result.input_url)
        if result.failed:
            out.write(f"<!-- task[{result.index}](failed): {url} -->\n")
            out.write(f"<!-- error[{result.index}]: {sanitize_for_comment(result.error or '')} -->\n")
            continue

        out.write(f"<!-- task[{result.index}]: {url} -->\n")
        out.write(result.markdown)
        if not result.markdown.endswith("\n"):
            out.write("\n")
        out.write(f"<!-- /task[{result.index}] -->\n")


def task_record(result: TaskResult, include_meta: bool) -> dict[str, Any]:
    """Build the JSONL record for one task."""
    if result.failed:
        return {
            "seq": result.index,
            "url": result.input_url,
            "error": (result.error or "").strip(),
        }

    content = result.markdown
    meta = None
    if include_meta:
        content, meta = split_injected_meta(content)

    record: dict[str, Any] = {"seq": result.index, "url": result.input_url}
    if result.final_url.strip() and result.final_url != result.input_url:
        record["resolved_url"] = result.final_url
    record["resolved_mode"] = resolve_mode(result.source)
    record["content"] = content
    if meta is not None and not meta.is_empty():
        record["meta"] = {
            k: v for k, v in (("title", meta.title), ("description", meta.description)) if v
        }
    return record


def write_batch_jsonl(out: TextIO, results: list[TaskResult], include_meta: bool) -> None:
    for result in results:
        out.write(json.dumps(task_record(result, include_meta), ensure_ascii=False))
        out.write("\n")
