"""Run the video pipeline once against a local file and print the result.

Usage: python scripts/process_video.py path/to/video.mp4 [--shape decomposed]

Uses the configured AWS capabilities and an in-memory job store, so it is a
quick way to check credentials and model access without the API or database.
The input file is never deleted.
"""

import argparse
import asyncio
import json
import logging
import mimetypes
import os
import sys

# Add project root to path so we can import app
sys.path.append(os.getcwd())

from app.config.settings import PipelineShape, settings
from app.domain.models import VideoJob
from app.infrastructure.persistence.repositories_memory import InMemoryJobRepository
from app.pipelines.video import VideoPipelineOrchestrator, VideoProcessingPipeline, default_capabilities


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("video", help="Path to a local video file")
    parser.add_argument(
        "--shape",
        choices=[shape.value for shape in PipelineShape],
        default=settings.pipeline.shape.value,
        help="Pipeline shape to run (default: %(default)s)",
    )
    parser.add_argument(
        "--no-fallback",
        action="store_true",
        help="Do not fall back to the decomposed shape when the overview stage degrades",
    )
    return parser.parse_args(argv)


async def main(argv: list[str]) -> int:
    args = _parse_args(argv)
    if not os.path.exists(args.video):
        print(f"File '{args.video}' not found.")
        return 2

    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")

    config = settings.pipeline.model_copy(
        update={
            "shape": PipelineShape(args.shape),
            "fallback_to_decomposed": not args.no_fallback,
        }
    )
    mime_type, _ = mimetypes.guess_type(args.video)

    repository = InMemoryJobRepository()
    job = await repository.create(
        VideoJob(
            owner_id="cli",
            source_filename=os.path.basename(args.video),
            source_path=os.path.abspath(args.video),
            mime_type=mime_type or "video/mp4",
        )
    )
    orchestrator = VideoPipelineOrchestrator(
        repository,
        capabilities=default_capabilities(config),
        config=config,
        delete_source=False,
    )

    print(f"Processing {args.video} ({config.shape.value})...")
    for stage in VideoProcessingPipeline.describe(config.shape):
        print(f"  {stage.order}. {stage.name}: {stage.summary}")
    result = await orchestrator.run(job.id)
    if result is None:
        print("The job record could not be read back.")
        return 1

    print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))
    return 0 if result.error is None else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
