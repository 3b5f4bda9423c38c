"""Pipeline orchestration for the digest relay.

Pipeline Flow:
    1. FETCH: Download the markdown feed and compute its digest
    2. CHECK_CHANGED: Compare against the last committed digest
       (skipped for forced runs; unchanged feed ends the run as DONE_NO_CHANGE)
    3. ANALYZE: Summarize the feed into a top-N digest
    4. FORMAT: Convert and split/truncate to the channel's size limit
    5. DISPATCH: Deliver chunks sequentially with pacing
    6. COMMIT_DIGEST: Persist the new digest

Stages run strictly in sequence and nothing is retried within a run. The
digest is committed only after every chunk has been delivered, so a run
that fails anywhere leaves the stored digest untouched and the next run
processes the same feed revision again.

Errors raised by a stage propagate unchanged to the caller, with the
run's RunRecord attached as ``error.run_record``.
"""

import asyncio
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Generator, Protocol

from agents.summarizer import SummarizerAgent
from channel import TelegramChannel
from config import Config
from detector import has_changed
from dispatcher import Dispatcher
from errors import DispatchError, TrendwireError
from formatter import MessageFormatter
from models.content import AnalysisResult, ContentSnapshot
from models.message import Chunk
from models.run import RunOutcome, RunRecord, Stage, new_run_id
from observability.logging import clear_context, set_run_context, set_stage_context
from observability.tracing import setup_tracing, trace_operation
from source import ContentSource
from state import DigestStore

logger = logging.getLogger(__name__)

# observer(record, stage, event, details); event is "start", "finish" or "fail"
Observer = Callable[[RunRecord, Stage, str, dict[str, Any]], None]


class Summarizer(Protocol):
    async def summarize(self, content: str) -> AnalysisResult: ...


class Source(Protocol):
    async def fetch(self) -> ContentSnapshot: ...


def log_observer(record: RunRecord, stage: Stage, event: str, details: dict[str, Any]) -> None:
    """Default observer: one structured log line per stage event."""
    fields = " ".join(f"{key}={value}" for key, value in details.items())
    if event == "start":
        logger.debug("Stage started | stage=%s", stage.value)
    elif event == "finish":
        logger.info(
            "Stage done | stage=%s duration=%.2fs %s",
            stage.value,
            record.stage_timings.get(stage.value, 0.0),
            fields,
        )
    else:
        logger.error("Stage failed | stage=%s %s", stage.value, fields)


class Pipeline:
    """Fetch, dedup, summarize, format, and dispatch one feed revision.

    All collaborators are injected; the pipeline holds no global state.
    Callers must not run two pipelines against the same store at once.

    Example:
        >>> pipeline = Pipeline(source, MemoryDigestStore(), summarizer, formatter, dispatcher)
        >>> record = await pipeline.run()
        >>> record.outcome
        <RunOutcome.DONE_SUCCESS: 'done_success'>
    """

    def __init__(
        self,
        source: Source,
        store: DigestStore,
        summarizer: Summarizer,
        formatter: MessageFormatter,
        dispatcher: Dispatcher,
        observer: Observer | None = log_observer,
    ):
        self.source = source
        self.store = store
        self.summarizer = summarizer
        self.formatter = formatter
        self.dispatcher = dispatcher
        self.observer = observer

    def _notify(self, record: RunRecord, stage: Stage, event: str, details: dict[str, Any]) -> None:
        if self.observer is None:
            return
        try:
            self.observer(record, stage, event, details)
        except Exception:
            logger.warning("Observer failed | stage=%s event=%s", stage.value, event, exc_info=True)

    @contextmanager
    def _stage(self, record: RunRecord, stage: Stage) -> Generator[dict[str, Any], None, None]:
        """Run a block as one pipeline stage, timing it and notifying the observer.

        Yields:
            Details dict the block can fill; passed to the observer on finish
        """
        record.stage = stage
        set_stage_context(stage.value)
        self._notify(record, stage, "start", {})
        details: dict[str, Any] = {}
        start = time.perf_counter()
        try:
            with trace_operation(f"stage.{stage.value}", {"run_id": record.run_id}) as span_attrs:
                yield details
                span_attrs.update(details)
        except Exception as e:
            record.stage_timings[stage.value] = round(time.perf_counter() - start, 3)
            self._notify(record, stage, "fail", {"error_type": type(e).__name__, "error": e})
            raise
        record.stage_timings[stage.value] = round(time.perf_counter() - start, 3)
        self._notify(record, stage, "finish", details)

    async def run(self, force: bool = False) -> RunRecord:
        """Execute one pipeline run.

        Args:
            force: Skip the change check and always summarize and deliver
                   (manual trigger). The digest is still committed on success.

        Returns:
            RunRecord with outcome DONE_NO_CHANGE or DONE_SUCCESS

        Raises:
            TrendwireError: The failing stage's error, with ``run_record`` set
        """
        record = RunRecord(run_id=new_run_id(forced=force), forced=force)
        set_run_context(record.run_id)
        logger.info("Pipeline started | forced=%s", force)

        try:
            with trace_operation("pipeline_run", {"run_id": record.run_id, "forced": force}) as run_attrs:
                await self._execute(record, force)
                run_attrs["outcome"] = record.outcome.value
            return record

        except Exception as e:
            record.outcome = RunOutcome.DONE_FAILURE
            record.error = str(e)
            record.error_type = type(e).__name__
            if isinstance(e, DispatchError):
                record.delivered = e.delivered
            if isinstance(e, TrendwireError):
                e.run_record = record
            raise

        finally:
            level = logging.ERROR if record.outcome is RunOutcome.DONE_FAILURE else logging.INFO
            logger.log(
                level,
                "Pipeline done | outcome=%s duration=%.2fs chunks=%d delivered=%d",
                record.outcome.value,
                record.duration,
                record.chunks,
                record.delivered,
            )
            clear_context()

    async def _execute(self, record: RunRecord, force: bool) -> None:
        with self._stage(record, Stage.FETCH) as details:
            snapshot = await self.source.fetch()
            record.digest = snapshot.digest
            record.source_chars = len(snapshot.text)
            details.update(chars=record.source_chars, digest=snapshot.digest[:12])

        if not force:
            with self._stage(record, Stage.CHECK_CHANGED) as details:
                changed = has_changed(snapshot, self.store.get())
                details["changed"] = changed
            if not changed:
                record.outcome = RunOutcome.DONE_NO_CHANGE
                return

        with self._stage(record, Stage.ANALYZE) as details:
            analysis = await self.summarizer.summarize(snapshot.text)
            record.summary_chars = len(analysis.text)
            details.update(chars=record.summary_chars, model=analysis.model)

        with self._stage(record, Stage.FORMAT) as details:
            chunks = self.formatter.format(analysis.text)
            record.chunks = len(chunks)
            details.update(mode=self.formatter.mode, chunks=record.chunks)

        with self._stage(record, Stage.DISPATCH) as details:
            report = await self.dispatcher.deliver(chunks)
            record.delivered = report.delivered
            record.message_id = report.last_message_id
            details.update(delivered=report.delivered, message_id=report.last_message_id)

        with self._stage(record, Stage.COMMIT_DIGEST) as details:
            self.store.set(snapshot.digest)
            details["digest"] = snapshot.digest[:12]

        record.outcome = RunOutcome.DONE_SUCCESS

    async def preview(self) -> list[Chunk]:
        """Fetch, summarize, and format without delivering or committing."""
        snapshot = await self.source.fetch()
        analysis = await self.summarizer.summarize(snapshot.text)
        return self.formatter.format(analysis.text)

    async def run_continuous(self, interval: float) -> None:
        """Run the pipeline every ``interval`` seconds until cancelled.

        A failed run is logged and the loop carries on; the unchanged digest
        makes the next run retry the same feed revision.
        """
        runs = 0
        failures = 0
        logger.info("Starting continuous mode | interval=%ds", interval)

        try:
            while True:
                runs += 1
                try:
                    await self.run()
                except Exception as e:
                    failures += 1
                    logger.error("Run failed | run=%d type=%s error=%s", runs, type(e).__name__, e)

                await asyncio.sleep(interval)

        except asyncio.CancelledError:
            logger.info("Pipeline stopped | runs=%d failures=%d", runs, failures)
            raise


def build_pipeline(
    config: Config,
    store: DigestStore,
    mode: str | None = None,
    observer: Observer | None = log_observer,
) -> Pipeline:
    """Wire a pipeline from configuration.

    Args:
        config: Application configuration
        store: Digest store to dedup against and commit to
        mode: Override MESSAGE_MODE ('split' or 'truncate')
        observer: Stage observer (defaults to structured logging)
    """
    if config.enable_logfire:
        setup_tracing(enabled=True, service_name="trendwire", token=config.logfire_token)

    return Pipeline(
        source=ContentSource(config.source_url, timeout=config.http_timeout_seconds),
        store=store,
        summarizer=SummarizerAgent(config),
        formatter=MessageFormatter.from_config(config, mode=mode),
        dispatcher=Dispatcher(TelegramChannel.from_config(config), delay=config.send_delay_seconds),
        observer=observer,
    )
