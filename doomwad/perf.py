"""Decode timing log: one event per decode operation, saved as JSONL.

Nothing is recorded until start() is called, so library use of WAD
does not accumulate events. finish() closes the last stage and stops
recording.

Usage:
    from doomwad.perf import perf

    perf.start()
    perf.stage("decode")
    with perf.timer("palettes"):
        palettes = read_palettes(directory)

    perf.finish()
    perf.summary()       # rich table on the terminal
    perf.save("runs")    # writes runs/YYYYMMDD_HHMMSS.jsonl
"""

import json
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from rich.table import Table

from doomwad.config import console


@dataclass
class PerfEvent:
    timestamp: float
    elapsed_s: float
    stage: str
    operation: str
    duration_ms: float
    success: bool = True
    error: str | None = None
    meta: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        d = {
            "timestamp": self.timestamp,
            "elapsed_s": round(self.elapsed_s, 3),
            "stage": self.stage,
            "operation": self.operation,
            "duration_ms": round(self.duration_ms, 3),
            "success": self.success,
        }
        if self.error:
            d["error"] = self.error
        d.update(self.meta)
        return d


class PerfLogger:
    def __init__(self):
        self._t0: float = time.time()
        self._events: list[PerfEvent] = []
        self._current_stage: str = ""
        self._stage_starts: dict[str, float] = {}
        # Nothing is recorded until start(); finish() stops recording again
        self.enabled: bool = False

    def start(self):
        """Reset the clock, drop previously recorded events and begin recording."""
        self._t0 = time.time()
        self._events = []
        self._current_stage = ""
        self._stage_starts = {}
        self.enabled = True

    def stage(self, name: str):
        """Mark entry into a run stage (decode, dump, ...)."""
        if not self.enabled:
            return
        now = time.time()
        self._close_stage(now)
        self._current_stage = name
        self._stage_starts[name] = now
        self._append(now, "stage_start", 0)

    def _close_stage(self, now: float):
        if self._current_stage and self._current_stage in self._stage_starts:
            dur = (now - self._stage_starts[self._current_stage]) * 1000
            self._append(now, "stage_end", dur)

    def _append(self, now: float, operation: str, duration_ms: float, success: bool = True,
                error: str | None = None, meta: dict | None = None):
        self._events.append(PerfEvent(
            timestamp=now,
            elapsed_s=now - self._t0,
            stage=self._current_stage,
            operation=operation,
            duration_ms=duration_ms,
            success=success,
            error=error,
            meta=meta or {},
        ))

    def event(self, operation: str, duration_ms: float, success: bool = True,
              error: str | None = None, **meta):
        if not self.enabled:
            return
        self._append(time.time(), operation, duration_ms, success, error, meta)

    @contextmanager
    def timer(self, operation: str, **meta):
        """Time the enclosed block; failures are recorded and re-raised."""
        t = time.perf_counter()
        err = None
        try:
            yield
        except Exception as e:
            err = f"{type(e).__name__}: {e}"
            raise
        finally:
            dur = (time.perf_counter() - t) * 1000
            self.event(operation, dur, success=err is None, error=err, **meta)

    def finish(self):
        """Close the final stage and stop recording. Events stay until the next start()."""
        if not self.enabled:
            return
        self._close_stage(time.time())
        self._current_stage = ""
        self.enabled = False

    def summary(self):
        """Print stage durations, per-operation timings and failures."""
        stages: dict[str, float] = {}
        ops: dict[str, list[float]] = {}
        for ev in self._events:
            if ev.operation == "stage_end":
                stages[ev.stage] = ev.duration_ms
            elif ev.operation != "stage_start":
                ops.setdefault(ev.operation, []).append(ev.duration_ms)

        if stages:
            table = Table(title="Stages (ms)")
            table.add_column("stage")
            table.add_column("duration", justify="right")
            for name, dur in stages.items():
                table.add_row(name, f"{dur:.2f}")
            table.add_row("total", f"{sum(stages.values()):.2f}")
            console.print(table)

        table = Table(title="Decode timings (ms)")
        table.add_column("operation")
        for name in ("count", "min", "median", "max", "total"):
            table.add_column(name, justify="right")
        for op, durations in ops.items():
            durations = sorted(durations)
            n = len(durations)
            table.add_row(
                op, str(n),
                f"{durations[0]:.2f}", f"{durations[n // 2]:.2f}",
                f"{durations[-1]:.2f}", f"{sum(durations):.2f}",
            )
        console.print(table)

        errors = [ev for ev in self._events if not ev.success]
        if errors:
            console.print(f"[red]Failed operations: {len(errors)}[/red]")
            for ev in errors[:5]:
                target = ev.meta.get('target', ev.operation)
                console.print(f"  {ev.stage or '-'} / {target}: {ev.error}")

    def save(self, directory: str = "runs") -> str:
        """Write all events as JSONL. Returns the file path."""
        Path(directory).mkdir(parents=True, exist_ok=True)
        ts = time.strftime("%Y%m%d_%H%M%S", time.localtime(self._t0))
        path = os.path.join(directory, f"{ts}.jsonl")
        with open(path, "w") as f:
            for ev in self._events:
                f.write(json.dumps(ev.to_dict()) + "\n")
        console.print(f"Perf log saved: {path} ({len(self._events)} events)")
        return path

    @property
    def events(self) -> list[PerfEvent]:
        return list(self._events)


# Module-level singleton
perf = PerfLogger()
