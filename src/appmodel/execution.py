"""Execution mode selection for an application model."""

import argparse
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

logger = logging.getLogger(__name__)

MANIFEST_PUBLISHER = "manifest"


class DistributedApplicationOperation(Enum):
    """Whether the model is being run locally or published as a manifest."""

    RUN = "run"
    PUBLISH = "publish"


@dataclass(frozen=True)
class ExecutionContext:
    """
    Immutable process-wide execution mode.

    Built once from the startup arguments and passed explicitly to the model,
    the evaluators and the manifest publisher.
    """

    operation: DistributedApplicationOperation = DistributedApplicationOperation.RUN
    publisher: str | None = None
    output_path: str | None = None

    @property
    def is_run_mode(self) -> bool:
        return self.operation is DistributedApplicationOperation.RUN

    @property
    def is_publish_mode(self) -> bool:
        return self.operation is DistributedApplicationOperation.PUBLISH

    @classmethod
    def run(cls) -> "ExecutionContext":
        return cls(DistributedApplicationOperation.RUN)

    @classmethod
    def publish(cls, output_path: str | None = None) -> "ExecutionContext":
        return cls(
            DistributedApplicationOperation.PUBLISH,
            publisher=MANIFEST_PUBLISHER,
            output_path=output_path,
        )

    @classmethod
    def from_args(
        cls, args: Sequence[str] | None = None, default_publisher: str | None = None
    ) -> "ExecutionContext":
        """
        Build the execution context from startup arguments.

        Only ``--publisher`` and ``--output-path`` are read; anything else is
        left for the host application.

        Args:
            args: Startup arguments (without the program name)
            default_publisher: Publisher used when ``--publisher`` is absent

        Returns:
            ExecutionContext in publish mode when a publisher is selected
        """
        parser = argparse.ArgumentParser(add_help=False)
        parser.add_argument("--publisher", default=None)
        parser.add_argument("--output-path", dest="output_path", default=None)
        known, _ = parser.parse_known_args(list(args or []))

        publisher = known.publisher or default_publisher or None
        if not publisher:
            return cls.run()

        if publisher != MANIFEST_PUBLISHER:
            raise ValueError(
                f"Unknown publisher '{publisher}'. Valid publishers: {[MANIFEST_PUBLISHER]}"
            )

        logger.debug("Publish mode selected (publisher=%s)", publisher)
        return cls(
            DistributedApplicationOperation.PUBLISH,
            publisher=publisher,
            output_path=known.output_path,
        )
