"""Demonstration of ordering template questions by their dependencies.

A scaffolding tool asks its questions in an order where every question comes
after the questions it depends on. This example builds that graph from a
dependency mapping, sorts it, and shows what a caller sees when the
declarations contain a cycle or a typo.
"""

import sys
from pathlib import Path

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from tampopo import CycleDetectedError, Graph, GraphValidator, UnknownNodeError, sort_graph
from tampopo.log_config import bind_context, clear_context, configure_logging, get_logger

QUESTIONS = {
    "project_name": [],
    "author": [],
    "license": ["author"],
    "use_ci": [],
    "ci_provider": ["use_ci"],
    "readme": ["project_name", "license"],
}


def order_questions(dependencies: dict[str, list[str]]) -> list[str] | None:
    """Sort the questions, reporting problems instead of raising.

    Args:
        dependencies: Mapping from each question to the questions it needs

    Returns:
        The questions in asking order, or None if they cannot be ordered
    """
    logger = get_logger(__name__)
    graph = Graph.from_dependencies(dependencies)

    try:
        order = sort_graph(graph)
    except CycleDetectedError as e:
        logger.error("questions_not_ordered", reason="cycle", nodes=list(e.nodes))
        print(e.report())
        return None
    except UnknownNodeError as e:
        logger.error("questions_not_ordered", reason="unknown", nodes=list(e.nodes))
        print(GraphValidator().validate(graph).summary())
        return None

    logger.info("questions_ordered", order=order)
    return order


def main() -> None:
    """Run the demonstration."""
    configure_logging(level="INFO", json_logs=False)
    bind_context(template="python-lib")

    try:
        order_questions(QUESTIONS)
        order_questions({**QUESTIONS, "author": ["readme"]})
        order_questions({**QUESTIONS, "ci_provider": ["use_cl"]})
    finally:
        clear_context()


if __name__ == "__main__":
    main()
