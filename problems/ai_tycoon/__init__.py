"""AI Tycoon problem: online demand learning for a single-product firm.

This module implements a simulated market and an adaptive advisor:
- Hidden market: drifting baseline demand, random market events, noisy
  demand that reacts to price, advertising and visible stock
- Advisor: linear demand model refined by one SGD step per period from
  sales (censored by inventory)
- Planner: exhaustive grid search over (price, ad spend, production)
  maximising predicted profit
- Public proxy: noisy smoothed average of recent sales

Key components:
- MarketModel, TycoonConfig: hidden generative process and constants
- DemandModel: predict / learn
- GridSearchPolicy: plan suggestion
- PublicProxyTracker: proxy update
- TycoonSession: per-period orchestration (advance_period, step, play)

Example:
    >>> from problems.ai_tycoon import TycoonConfig, TycoonSession, summarize
    >>> import jax
    >>>
    >>> session = TycoonSession(TycoonConfig())
    >>> state, snapshots = session.play(jax.random.PRNGKey(0))
    >>> summary = summarize(snapshots, state)
"""

from .model import (
    EVENT_NAMES,
    EVENT_TABLE,
    NEUTRAL_EVENT,
    MarketEvent,
    MarketModel,
    MarketState,
    TycoonConfig,
    event_name,
    make_event,
)

from .advisor import (
    DemandModel,
    DemandWeights,
    demand_features,
    format_weights,
)

from .policy import (
    Action,
    FixedPlanPolicy,
    GridSearchPolicy,
    make_action,
)

from .proxy import PublicProxyTracker

from .session import (
    PeriodSnapshot,
    SessionState,
    SessionSummary,
    TycoonSession,
    stack_snapshots,
    summarize,
)

__all__ = [
    # Market
    "EVENT_NAMES",
    "EVENT_TABLE",
    "NEUTRAL_EVENT",
    "MarketEvent",
    "MarketModel",
    "MarketState",
    "TycoonConfig",
    "event_name",
    "make_event",
    # Advisor
    "DemandModel",
    "DemandWeights",
    "demand_features",
    "format_weights",
    # Policies
    "Action",
    "FixedPlanPolicy",
    "GridSearchPolicy",
    "make_action",
    # Proxy
    "PublicProxyTracker",
    # Session
    "PeriodSnapshot",
    "SessionState",
    "SessionSummary",
    "TycoonSession",
    "stack_snapshots",
    "summarize",
]
