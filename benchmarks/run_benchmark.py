"""
CLI entry point for running the broker throughput benchmark.

Usage:
    python -m benchmarks.run_benchmark                        # 1000 jobs, local Redis
    python -m benchmarks.run_benchmark --num-jobs 5000
    python -m benchmarks.run_benchmark --redis-url redis://redis:6379/1

Prerequisites:
    a reachable Redis; the benchmark uses its own throwaway queue and
    removes it afterwards
"""

import argparse
import json

from benchmarks.throughput import ThroughputBenchmark
from config.settings import settings


def main():
    parser = argparse.ArgumentParser(description="Content Queue Broker Throughput Benchmark")
    parser.add_argument(
        "--num-jobs", type=int, default=1000,
        help="Number of jobs to publish and process (default: 1000)",
    )
    parser.add_argument(
        "--redis-url", type=str, default=settings.redis_url,
        help=f"Redis URL (default: {settings.redis_url})",
    )
    args = parser.parse_args()

    print("=== Broker Throughput Benchmark ===")
    print(f"Jobs: {args.num_jobs} | Redis: {args.redis_url}\n")

    result = ThroughputBenchmark(redis_url=args.redis_url, num_jobs=args.num_jobs).run()

    print(json.dumps(result, indent=2))
    print("\n{:<10} {:>10} {:>15}".format("Stage", "Time (s)", "Throughput"))
    print("-" * 37)
    print("{:<10} {:>10.3f} {:>12.2f} j/s".format("publish", result["publish_sec"], result["publish_per_sec"]))
    if result["process_per_sec"] is not None:
        print("{:<10} {:>10.3f} {:>12.2f} j/s".format("process", result["process_sec"], result["process_per_sec"]))


if __name__ == "__main__":
    main()
