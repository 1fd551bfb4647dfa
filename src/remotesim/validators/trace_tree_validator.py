"""
Validate a flushed span record set as a trace tree.

Structural rules: every span finished exactly once, end >= start, every
parent present in the set, a parent never ends before its children, every
root is a session. Shape rules: each operation kind carries its required
tags and numeric fields.
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..generators.tracing import SpanRecord

# operation -> (required tags, required numeric fields)
REQUIRED_FIELDS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "session": (("user_persona", "device_name"), ("session_duration_seconds",)),
    "bt.scan": (("scan_status", "scan_result"), ("devices_found", "scan_duration_ms")),
    "bt.connection": (("device_name", "device_type", "connection_result"), ("signal_strength",)),
    "bt.write.command": (("command_type", "device_name", "command_status"), ("write_latency_ms",)),
    "device.response": (("ack_status",), ("ack_latency_ms", "status_code")),
    "ui.state.render": (("state_change",), ("render_time_ms",)),
    "ui.action.user": (("screen_name",), ()),
    "ui.screen.load": (("screen_name", "load_status"), ("load_time_ms",)),
}

# Numeric fields only required when the operation succeeded: (operation, tag, value) -> fields
SUCCESS_FIELDS: dict[tuple[str, str, str], tuple[str, ...]] = {
    ("bt.connection", "connection_result", "success"): ("connection_time_ms",),
    ("bt.write.command", "command_status", "success"): ("total_latency_ms",),
}


@dataclass
class TreeIssue:
    rule: str
    span_id: int | None
    message: str


@dataclass
class TreeValidationResult:
    sessions: int = 0
    spans: int = 0
    issues: list[TreeIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.issues

    def by_rule(self) -> Counter:
        return Counter(i.rule for i in self.issues)


def _check_shape(record: SpanRecord, result: TreeValidationResult) -> None:
    required = REQUIRED_FIELDS.get(record.operation)
    if required is None:
        return
    tags, fields = required
    for tag in tags:
        if tag not in record.tags:
            result.issues.append(
                TreeIssue("missing_tag", record.span_id, f"{record.operation} lacks tag {tag}")
            )
    for name in fields:
        if name not in record.data:
            result.issues.append(
                TreeIssue("missing_field", record.span_id, f"{record.operation} lacks {name}")
            )
    for (operation, tag, value), extra in SUCCESS_FIELDS.items():
        if record.operation == operation and record.tags.get(tag) == value:
            for name in extra:
                if name not in record.data:
                    result.issues.append(
                        TreeIssue(
                            "missing_field", record.span_id, f"{record.operation} lacks {name}"
                        )
                    )
    if record.operation == "ui.action.user":
        if "user_action" not in record.tags and "control_type" not in record.tags:
            result.issues.append(
                TreeIssue(
                    "missing_tag", record.span_id, "ui.action.user lacks user_action/control_type"
                )
            )
        if not any(k.endswith("_time_ms") for k in record.data):
            result.issues.append(
                TreeIssue("missing_field", record.span_id, "ui.action.user lacks a timing field")
            )


def validate_span_records(
    records: Iterable[SpanRecord],
    open_span_ids: Iterable[int] = (),
    check_shape: bool = True,
) -> TreeValidationResult:
    """
    Check a record set for tree and lifecycle violations.

    Args:
        records: Finished span records (e.g. InMemoryTracingClient.records)
        open_span_ids: Spans started but never finished
        check_shape: Also check required tags/fields per operation

    Returns:
        TreeValidationResult with one TreeIssue per violation
    """
    records = list(records)
    result = TreeValidationResult(spans=len(records))

    counts = Counter(r.span_id for r in records)
    for span_id, count in counts.items():
        if count > 1:
            result.issues.append(
                TreeIssue("finished_once", span_id, f"span finished {count} times")
            )
    for span_id in open_span_ids:
        result.issues.append(TreeIssue("unfinished", span_id, "span never finished"))

    by_id = {r.span_id: r for r in records}
    for record in records:
        if record.end_ns < record.start_ns:
            result.issues.append(
                TreeIssue(
                    "end_before_start", record.span_id, f"{record.operation} ends before start"
                )
            )
        if record.parent_id is None:
            result.sessions += 1
            if record.operation != "session":
                result.issues.append(
                    TreeIssue("unexpected_root", record.span_id, f"root is {record.operation}")
                )
        else:
            parent = by_id.get(record.parent_id)
            if parent is None:
                result.issues.append(
                    TreeIssue("orphan", record.span_id, f"parent {record.parent_id} not flushed")
                )
            elif parent.end_ns < record.end_ns:
                result.issues.append(
                    TreeIssue(
                        "child_outlives_parent",
                        record.span_id,
                        f"{record.operation} ends after parent {parent.operation}",
                    )
                )
        if check_shape:
            _check_shape(record, result)

    return result
