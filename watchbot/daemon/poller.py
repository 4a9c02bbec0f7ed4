"""Fixed-interval poll loop driving the watch engine."""

import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from watchbot.connectors.base import SourceConnector
from watchbot.core.engine import EntityResult, Outcome, WatchEngine
from watchbot.core.errors import ConnectorError

logger = logging.getLogger(__name__)


@dataclass
class PassReport:
    """Summary of one polling pass."""

    started_at: datetime
    results: List[EntityResult] = field(default_factory=list)
    listing_error: Optional[str] = None
    interrupted: bool = False

    def counts(self) -> Dict[str, int]:
        return dict(Counter(result.outcome.value for result in self.results))

    @property
    def emitted(self) -> List[EntityResult]:
        return [
            r for r in self.results
            if r.outcome in (Outcome.EMITTED, Outcome.EMITTED_UNRECORDED)
        ]


class Poller:
    """Polls a source connector on a fixed interval, one pass at a time."""
    
    def __init__(
        self,
        connector: SourceConnector,
        engine: WatchEngine,
        poll_interval: int = 15,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the poller.
        
        Args:
            connector: Source of entities
            engine: Per-entity change detection
            poll_interval: Seconds between pass start times
            clock: Monotonic clock, replaceable in tests
        """
        self.connector = connector
        self.engine = engine
        self.poll_interval = poll_interval
        self.clock = clock
        self.running = False
        self._stop_event = threading.Event()
        self._pass_lock = threading.Lock()
    
    def start(self, max_passes: Optional[int] = None) -> None:
        """
        Run passes until stop() is called.

        Ticks sit on a fixed grid of poll_interval seconds. When a pass
        overruns one or more ticks, those ticks are dropped rather than
        queued, and the next pass starts on the following grid point.
        
        Args:
            max_passes: Stop after this many passes (None for no limit)
        """
        self.running = True
        logger.info("Poller started (interval: %ss)", self.poll_interval)
        
        passes = 0
        next_tick = self.clock()
        try:
            while not self._stop_event.is_set():
                pass_started = self.clock()
                self.run_pass()
                passes += 1
                if max_passes is not None and passes >= max_passes:
                    break
                
                next_tick += self.poll_interval
                now = self.clock()
                if now >= next_tick:
                    missed = int((now - next_tick) // self.poll_interval) + 1
                    next_tick += missed * self.poll_interval
                    logger.warning(
                        "Pass took %.1fs, longer than the %ss interval; skipped %d tick(s)",
                        now - pass_started, self.poll_interval, missed,
                    )
                self._stop_event.wait(max(0.0, next_tick - now))
        finally:
            self.running = False
            logger.info("Poller stopped")
    
    def stop(self) -> None:
        """Request shutdown. Safe to call from a signal handler."""
        self._stop_event.set()
    
    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()
    
    def run_pass(self) -> Optional[PassReport]:
        """
        Perform one polling pass over every open entity.
        
        Returns:
            PassReport, or None if another pass is still running
        """
        if not self._pass_lock.acquire(blocking=False):
            logger.warning("Previous pass still running, skipping this tick")
            return None
        try:
            return self._run_pass()
        finally:
            self._pass_lock.release()
    
    def _run_pass(self) -> PassReport:
        report = PassReport(started_at=datetime.now(timezone.utc))
        logger.debug("Checking %s...", self.connector.describe())
        
        try:
            entities = self.connector.list_open_entities()
        except ConnectorError as e:
            logger.error("Failed to list open entities: %s", e)
            report.listing_error = str(e)
            return report
        except Exception as e:
            logger.exception("Unexpected error listing open entities")
            report.listing_error = str(e) or type(e).__name__
            return report

        if not entities:
            logger.debug("No open entities found")
            return report
        
        logger.debug("Found %d open entit%s", len(entities), "y" if len(entities) == 1 else "ies")
        
        for entity in entities:
            if self._stop_event.is_set():
                report.interrupted = True
                logger.info("Shutdown requested, stopping pass before %s", entity.label)
                break
            report.results.append(self._process_entity(entity))
        
        emitted = report.emitted
        if emitted:
            logger.info(
                "Pass complete: %d task(s) emitted (%s)",
                len(emitted), ", ".join(f"{r.entity_key}#{r.revision}" for r in emitted),
            )
        return report
    
    def _process_entity(self, entity) -> EntityResult:
        try:
            return self.engine.process_entity(entity)
        except ConnectorError as e:
            logger.warning("%s: Skipping this pass, fetch failed: %s", entity.label, e)
            return EntityResult(entity.key, Outcome.FAILED, error=str(e))
        except Exception as e:
            logger.exception("%s: Unexpected error, skipping this pass", entity.label)
            return EntityResult(entity.key, Outcome.FAILED, error=str(e))
