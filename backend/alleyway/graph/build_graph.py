from typing import Callable, Optional

from langgraph.graph import StateGraph, END

from alleyway.config import Settings, get_settings
from alleyway.graph.agents import (
    drafting,
    finalizing,
    route_after_drafting,
    supervising,
    validating_locations,
)
from alleyway.graph.state import RunState
from alleyway.integrations.registry import ProviderRegistry, get_registry


def _bind(node, providers: ProviderRegistry, settings: Settings) -> Callable[[RunState], RunState]:
    def _run(state: RunState) -> RunState:
        return node(state, providers, settings)

    _run.__name__ = node.__name__
    return _run


def build_graph(providers: Optional[ProviderRegistry] = None, settings: Optional[Settings] = None):
    """
    drafting -> (validating_locations) -> supervising -> finalizing -> END

    Cross-validation only runs when the run state asks for it (tier-gated).
    """
    providers = providers or get_registry()
    settings = settings or get_settings()

    g = StateGraph(RunState)

    g.add_node("drafting", _bind(drafting, providers, settings))
    g.add_node("validating_locations", _bind(validating_locations, providers, settings))
    g.add_node("supervising", _bind(supervising, providers, settings))
    g.add_node("finalizing", _bind(finalizing, providers, settings))

    g.set_entry_point("drafting")
    g.add_conditional_edges(
        "drafting",
        route_after_drafting,
        {"validating_locations": "validating_locations", "supervising": "supervising"},
    )
    g.add_edge("validating_locations", "supervising")
    g.add_edge("supervising", "finalizing")
    g.add_edge("finalizing", END)

    return g.compile()
