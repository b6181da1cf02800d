#!/usr/bin/env python3
"""Benchmark: StreamingAnalyzer throughput and finalize latency.

Feeds synthetic content through the analyzer in host-sized chunks and reports
finalize latency percentiles and characters per second for three content
shapes: clean prose, PII-dense text, and high-entropy (base64-like) data.

Usage::

    pip install -e .
    python benchmarks/bench_analyzer.py [--size-kb 1024] [--iterations 20]

Results are saved to benchmarks/analyzer_results.json.
"""

from __future__ import annotations

import argparse
import base64
import json
import statistics
import time
from pathlib import Path

from filescan.analyzer.loader import AnalyzerLoader
from filescan.host.limits import iter_chunks

# ─── Benchmark Configuration ──────────────────────────────────────────────────

CHUNK_CHARS = 64 * 1024

CLEAN_PARAGRAPH = (
    "The quarterly planning meeting covered hiring targets, the updated budget, "
    "and the roadmap for the next two releases. Each team lead presented a short "
    "summary of progress and open risks before the discussion moved to staffing. "
)

PII_PARAGRAPH = (
    "Customer record: jane.doe@example.com, SSN 123-45-6789, card "
    "4111-1111-1111-1111, account 123456789012. Follow up with "
    "john.smith@example.org about ticket 987654321. "
)


def make_content(paragraph: str, size_chars: int) -> str:
    return (paragraph * (size_chars // len(paragraph) + 1))[:size_chars]


def make_high_entropy(size_chars: int) -> str:
    raw = bytes((i * 7919 + 13) % 256 for i in range(size_chars))
    return base64.b64encode(raw).decode("ascii")[:size_chars]


def benchmark(loader: AnalyzerLoader, content: str, label: str, iterations: int) -> dict:
    """Run full ingest + finalize ``iterations`` times over ``content``."""
    chunks = list(iter_chunks(content, CHUNK_CHARS))
    finalize_ms: list[float] = []
    total_ms: list[float] = []
    decision = None

    for _ in range(iterations):
        analyzer = loader.create_streaming_analyzer()
        t0 = time.perf_counter()
        for chunk in chunks:
            analyzer.process_chunk(chunk)
        t1 = time.perf_counter()
        result = analyzer.finalize()
        t2 = time.perf_counter()
        finalize_ms.append((t2 - t1) * 1000)
        total_ms.append((t2 - t0) * 1000)
        decision = result.decision.value

    finalize_ms.sort()
    p99_idx = min(int(iterations * 0.99), iterations - 1)
    avg_total = statistics.mean(total_ms)
    chars_per_sec = len(content) / (avg_total / 1000) if avg_total > 0 else 0.0

    summary = {
        "label": label,
        "iterations": iterations,
        "content_chars": len(content),
        "chunks": len(chunks),
        "decision": decision,
        "finalize_avg_ms": round(statistics.mean(finalize_ms), 3),
        "finalize_p50_ms": round(finalize_ms[int(iterations * 0.50)], 3),
        "finalize_p99_ms": round(finalize_ms[p99_idx], 3),
        "total_avg_ms": round(avg_total, 3),
        "chars_per_sec": round(chars_per_sec),
    }
    print(
        f"  [{label}] decision={decision} finalize p50={summary['finalize_p50_ms']}ms "
        f"p99={summary['finalize_p99_ms']}ms throughput={summary['chars_per_sec']:,} chars/s"
    )
    return summary


def main() -> None:
    parser = argparse.ArgumentParser(description="StreamingAnalyzer benchmark")
    parser.add_argument("--size-kb", type=int, default=1024, help="content size per run (KiB of chars)")
    parser.add_argument("--iterations", type=int, default=20)
    args = parser.parse_args()

    size_chars = args.size_kb * 1024
    loader = AnalyzerLoader()
    loader.load()

    print("=" * 70)
    print(f"filescan StreamingAnalyzer Benchmark — {args.size_kb} KiB x {args.iterations}")
    print("=" * 70)

    results = [
        benchmark(loader, make_content(CLEAN_PARAGRAPH, size_chars), "clean_prose", args.iterations),
        benchmark(loader, make_content(PII_PARAGRAPH, size_chars), "pii_dense", args.iterations),
        benchmark(loader, make_high_entropy(size_chars), "high_entropy", args.iterations),
    ]

    output = Path(__file__).parent / "analyzer_results.json"
    output.write_text(json.dumps({"results": results}, indent=2))
    print(f"\nResults saved to {output}")


if __name__ == "__main__":
    main()
