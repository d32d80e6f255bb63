#!/usr/bin/env python3
"""
Demo - Run a draft article through the quality pipeline.

Usage: python scripts/demo.py

No network access required -- source reachability checks stay off.
"""

import asyncio
import sys
from pathlib import Path

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

DRAFT = """# Caching Strategies for Web APIs

In today's fast-paced world, caching is a game-changer for teams that run web APIs.
this guide explains how response caching works and when it pays off [1].

Caching stores a computed response so the next identical request is served without
recomputing it. In our experience running production services, a well placed cache
cut median latency in half. Teh hardest part is invalidation, and it's important to note
that stale data can be worse than slow data [2].

Start with HTTP cache headers, then add an application cache for expensive queries.
Measure hit rates before and after each change.

## References

[1]: https://developer.mozilla.org/en-US/docs/Web/HTTP/Caching
"""


async def main():
    from content_quality.pipeline import PipelineOptions, QualityPipeline, build_audit

    print("\n" + "=" * 60)
    print("  CONTENT QUALITY PIPELINE DEMO")
    print("  Analyze -> Score -> Approve -> Refine")
    print("=" * 60 + "\n")

    requirements = {
        "targetAudience": "developers",
        "tone": "professional",
        "keywords": ["caching", "cache invalidation"],
    }

    pipeline = QualityPipeline()
    print(f"Stages: {', '.join(pipeline.stage_names)}")
    print(f"Keywords: {', '.join(requirements['keywords'])}\n")

    final = await pipeline.run(DRAFT, requirements, PipelineOptions(max_refinement_iterations=3))
    audit = build_audit(final)

    print(f"\n{'=' * 60}")
    print(f"  RESULTS")
    print(f"{'=' * 60}\n")

    print(f"  Outcome: {audit['outcome'].upper()} ({audit['overallScore']:.1f} / {audit['minimumOverallScore']:.1f})")
    print(f"  Iterations: {final.total_iterations}")
    print(f"  Duration: {final.processing_time_ms:.0f}ms")
    print(f"  Trajectory: {' -> '.join(str(s['overallScore']) for s in audit['scoreTrajectory'])}")

    print(f"\n  Stages:")
    for stage in audit["stages"]:
        mark = "ok" if stage["passed"] else "--"
        print(f"    [{mark}] {stage['stage']:<10} {stage['score']:6.1f}")

    print(f"\n  Rationale:")
    for line in audit["rationale"]:
        print(f"    - {line}")

    print(f"\n  Final content:\n")
    for line in final.final_content.splitlines():
        print(f"    {line}")
    print(f"\n{'=' * 60}\n")


if __name__ == "__main__":
    asyncio.run(main())
