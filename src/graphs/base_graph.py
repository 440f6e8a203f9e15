"""Base class for LangGraph pipelines."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod

from langgraph.graph import StateGraph

from src.utils.errors import GraphExecutionError
from src.utils.logging_config import logger


class BaseGraph(ABC):
    """Abstract base for the service's graphs.

    Subclasses describe their nodes in ``build_graph``; this class owns
    logging, compilation and timed execution.
    """

    name = "graph"

    def __init__(self, timeout: int = 30):
        self.timeout = timeout
        self.logger = logger
        self._compiled = None

    @abstractmethod
    def build_graph(self) -> StateGraph:
        """Build and return the StateGraph instance."""

    def _log_node_execution(self, node_name: str, state: dict) -> None:
        """Log node start with state keys only, never preference contents."""

        self.logger.debug("Executing node: %s keys=%s", node_name, sorted(state))

    def _log_node_error(self, node_name: str, error: Exception) -> None:
        self.logger.error("Node %s failed: %s", node_name, str(error))

    def compile(self):
        """Build and compile the graph, once per instance."""

        if self._compiled is None:
            try:
                self._compiled = self.build_graph().compile()
            except Exception as exc:
                raise GraphExecutionError(f"{self.name} graph failed to compile: {exc}") from exc
        return self._compiled

    def run(self, state: dict) -> dict:
        """Invoke the compiled graph; warn when it ran past ``timeout`` seconds."""

        start_time = time.time()
        try:
            result = self.compile().invoke(state)
        except GraphExecutionError:
            raise
        except Exception as exc:
            raise GraphExecutionError(f"{self.name} graph failed: {exc}") from exc

        elapsed = time.time() - start_time
        self.logger.info("%s graph completed in %.2fs", self.name, elapsed)
        if elapsed > self.timeout:
            self.logger.warning(
                "%s graph overran its %ss budget (%.2fs)", self.name, self.timeout, elapsed
            )
        return result
