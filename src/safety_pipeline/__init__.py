"""
Safety Pipeline - Multi-Stage Language Model Analysis Engine.

Turns raw site data into structured risk reports by chaining calls to a
generative language model, with structured-data extraction from the
model text and a deterministic fallback at every stage.

Pipelines:
    - safety_analysis: checklist -> job hazard analysis report
    - emergency_plan: questionnaire -> emergency action plan
    - comparison: baseline + update -> GO / NO-GO comparison report

Main Components:
    - domain: Entities and per-stage payload models
    - extraction: JSON extraction from model text
    - contracts: Prompt, schema, rules and fallback per stage
    - pipeline: Stage runner, context and orchestrator
    - adapters: Model, audit sink, logger and metrics implementations
    - config: Configuration models and loaders

Example:
    >>> from safety_pipeline.adapters import GeminiModelAdapter
    >>> from safety_pipeline.pipelines import build_orchestrator
    >>> orchestrator = build_orchestrator("comparison", GeminiModelAdapter())
    >>> outcome = orchestrator.run({"baseline": baseline, "delta": delta})
    >>> print(outcome.metadata["goNoGoDecision"])

"""

import logging

__version__ = "1.0.0"


def configure_logging(
    level: int = logging.INFO,
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
) -> None:
    """
    Configure logging for the safety pipeline.

    Call this at application startup to see log messages.
    By default, only WARNING and above are visible.

    Args:
        level: Logging level (default: INFO)
        format: Log message format

    Example:
        >>> import safety_pipeline
        >>> safety_pipeline.configure_logging(logging.DEBUG)
    """
    logging.basicConfig(
        level=level,
        format=format,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("safety_pipeline").setLevel(level)
