from __future__ import annotations

import io

from rich.console import Console

from catalog_crawler.engine import CrawlProgress, ProgressKind
from catalog_crawler.ui import RichProgressSink


def _event(kind: ProgressKind, message: str, **overrides) -> CrawlProgress:
    base = dict(
        kind=kind,
        current_page=1,
        total_pages=3,
        active_credential_index=0,
        status_message=message,
    )
    base.update(overrides)
    return CrawlProgress(**base)


def test_sink_is_silent_off_terminal_but_keeps_counts() -> None:
    stream = io.StringIO()
    sink = RichProgressSink(enabled=True, console=Console(file=stream))
    assert sink.enabled is False

    with sink:
        sink.emit(_event(ProgressKind.RETRY_WAIT, "Page 1 rate limited. Retrying in 1.0s..."))
        sink.emit(_event(ProgressKind.ROTATION, "Switching to API key 2/2 after repeated rate limiting."))
        sink.emit(_event(ProgressKind.PAGE, "Fetched page 2 of 3.", current_page=2))

    assert sink.retry_waits == 1
    assert sink.rotations == 1
    assert sink.last_message == "Fetched page 2 of 3."
    assert stream.getvalue() == ""


def test_sink_renders_on_a_terminal() -> None:
    stream = io.StringIO()
    console = Console(file=stream, force_terminal=True, width=120)
    sink = RichProgressSink(enabled=True, console=console)

    with sink:
        sink.emit(
            _event(
                ProgressKind.PAGE,
                "Processing issuer 1/2: Canada (page 1/3)",
                current_issuer_index=0,
                total_issuers=2,
                issuer_name="Canada",
            )
        )
        sink.emit(_event(ProgressKind.COMPLETED, "x" * 200, current_page=3))

    assert sink.last_message == "x" * 200
    assert sink._progress is None
