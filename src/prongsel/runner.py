"""Batch execution of the selection, serially or with a process pool.

Each batch builds its own engine and owns private sinks; batch outputs are
merged afterwards in batch order (table rows concatenated, histograms added
bin by bin).
"""

from __future__ import annotations

import logging
import multiprocessing
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Sequence

from .config import SelectionConfig
from .models import EventInput
from .sinks import HistogramSink, TableSink

LOGGER = logging.getLogger("prongsel.runner")


def split_batches(events: Sequence[EventInput], n_batches: int) -> list[list[EventInput]]:
    """Split events into at most `n_batches` contiguous, non-empty batches."""
    if n_batches < 1:
        raise ValueError("n_batches must be >= 1.")
    events = list(events)
    if not events:
        return []
    n_batches = min(n_batches, len(events))
    size, extra = divmod(len(events), n_batches)
    batches = []
    start = 0
    for i in range(n_batches):
        stop = start + size + (1 if i < extra else 0)
        batches.append(events[start:stop])
        start = stop
    return batches


def process_batch(
    config: SelectionConfig,
    events: Sequence[EventInput],
) -> tuple[TableSink, HistogramSink]:
    """Run the selection over one batch with freshly built sinks."""
    combiner = config.build_combiner()
    table = TableSink()
    histograms = config.build_histogram_sink()
    for event in events:
        combiner.process_event(event, sinks=(table, histograms))
    return table, histograms


def run_batches(
    config: SelectionConfig,
    events: Sequence[EventInput],
    n_workers: int = 1,
) -> tuple[TableSink, HistogramSink]:
    """Process all events and return the merged sinks."""
    max_procs = multiprocessing.cpu_count() or 1
    if n_workers > max_procs:
        LOGGER.info(
            "Requested %d workers but only %d cores available; using %d.",
            n_workers,
            max_procs,
            max_procs,
        )
        n_workers = max_procs
    n_workers = max(1, n_workers)

    start_time = time.perf_counter()
    batches = split_batches(events, n_workers)
    if n_workers == 1 or len(batches) <= 1:
        outputs = [process_batch(config, batch) for batch in batches]
    else:
        outputs = [None] * len(batches)
        with ProcessPoolExecutor(max_workers=n_workers) as pool:
            future_to_index = {
                pool.submit(process_batch, config, batch): idx
                for idx, batch in enumerate(batches)
            }
            for future in as_completed(future_to_index):
                idx = future_to_index[future]
                outputs[idx] = future.result()
                LOGGER.debug("Batch %d/%d done", idx + 1, len(batches))

    table = TableSink()
    histograms = config.build_histogram_sink()
    for batch_table, batch_hists in outputs:
        table += batch_table
        histograms += batch_hists

    LOGGER.info(
        "Selected %d candidates from %d events in %.2f s using %d worker(s)",
        len(table),
        len(table.summaries),
        time.perf_counter() - start_time,
        n_workers,
    )
    return table, histograms
