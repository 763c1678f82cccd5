"""Per-period orchestration of an AI Tycoon session.

One period always runs in this order:
    drift -> draw event -> suggest plan -> finalize plan -> realize demand
    -> settle financials -> advisor learns -> proxy update

Each period consumes exactly one PRNG key, split in that order into
(drift, event, demand, proxy) sub-keys, so a fixed seed reproduces the whole
trajectory. The grid search in between never touches the random stream.
"""

import logging
from typing import Callable, List, NamedTuple, Optional, Tuple
from jaxtyping import PRNGKeyArray
import jax
import jax.numpy as jnp
from flax import struct

from .advisor import DemandModel, DemandWeights, format_weights
from .model import EVENT_NAMES, MarketEvent, MarketModel, MarketState, TycoonConfig
from .policy import Action, GridSearchPolicy, PlanPolicy, make_action
from .proxy import PublicProxyTracker

logger = logging.getLogger(__name__)

Key = PRNGKeyArray


@struct.dataclass
class SessionState:
    market: MarketState
    weights: DemandWeights
    proxy: jnp.ndarray  # public demand proxy
    inventory: jnp.ndarray  # units on hand
    cash: jnp.ndarray
    sales_window: jnp.ndarray  # recent sales, oldest first
    sales_count: jnp.ndarray  # valid entries in sales_window
    period: jnp.ndarray  # periods completed


@struct.dataclass
class PeriodSnapshot:
    """Closed record of one period; stacked along axis 0 for a session."""
    period: jnp.ndarray
    event_index: jnp.ndarray
    base_shock: jnp.ndarray
    base_demand: jnp.ndarray  # hidden truth at the time
    price: jnp.ndarray
    ad_spend: jnp.ndarray
    production: jnp.ndarray
    demand: jnp.ndarray  # uncensored
    sold: jnp.ndarray
    inventory_end: jnp.ndarray
    revenue: jnp.ndarray
    cost: jnp.ndarray
    profit: jnp.ndarray
    cash: jnp.ndarray
    proxy: jnp.ndarray  # proxy after the period's update


class SessionSummary(NamedTuple):
    total_profit: float
    total_sold: int
    final_cash: float
    final_inventory: int
    periods: int


# decide(event, suggestion, state) -> override Action, or None to accept
DecideFn = Callable[[MarketEvent, Action, SessionState], Optional[Action]]


def stack_snapshots(snapshots: List[PeriodSnapshot]) -> PeriodSnapshot:
    """Stack per-period snapshots along a leading time axis."""
    return jax.tree_util.tree_map(lambda *xs: jnp.stack(xs), *snapshots)


class TycoonSession:
    """Market, advisor, planner and proxy wired into one period loop.

    Example:
        >>> session = TycoonSession(TycoonConfig())
        >>> key = jax.random.PRNGKey(0)
        >>> state = session.init_state(key)
        >>> key, subkey = jax.random.split(key)
        >>> state, snapshot = session.step(state, subkey)
    """

    def __init__(
        self,
        config: TycoonConfig,
        policy: Optional[PlanPolicy] = None,
    ) -> None:
        """Initialize session.

        Args:
            config: Problem configuration.
            policy: Plan policy; defaults to grid search over the advisor.
        """
        self.config = config
        self.market = MarketModel(config)
        self.advisor = DemandModel(config)
        self.proxy_tracker = PublicProxyTracker(config)
        self.policy = policy if policy is not None else GridSearchPolicy(self.advisor)

    def init_state(self, key: Key) -> SessionState:
        """Initial session state (prior weights, opening ledger)."""
        window, count = self.proxy_tracker.empty_window()
        return SessionState(
            market=self.market.init_state(key),
            weights=self.advisor.init_weights(),
            proxy=jnp.array(self.config.initial_proxy),
            inventory=jnp.array(self.config.initial_inventory, dtype=jnp.int32),
            cash=jnp.array(self.config.initial_cash),
            sales_window=window,
            sales_count=count,
            period=jnp.array(0, dtype=jnp.int32),
        )

    def clamp_action(self, action: Action) -> Action:
        """Clamp each field of an action to its allowed domain."""
        cfg = self.config
        return Action(
            price=jnp.clip(jnp.asarray(action.price, dtype=jnp.float32), *cfg.price_bounds),
            ad_spend=jnp.clip(jnp.asarray(action.ad_spend, dtype=jnp.float32), *cfg.ad_bounds),
            production=jnp.clip(
                jnp.asarray(action.production, dtype=jnp.int32), *cfg.production_bounds
            ),
        )

    def is_valid_action(self, action: Action) -> jax.Array:
        """Check that every field of an action is inside its domain.

        Returns:
            Boolean array: True if the action is valid.
        """
        cfg = self.config
        price_ok = (action.price >= cfg.price_bounds[0]) & (action.price <= cfg.price_bounds[1])
        ad_ok = (action.ad_spend >= cfg.ad_bounds[0]) & (action.ad_spend <= cfg.ad_bounds[1])
        production_ok = (
            (action.production >= cfg.production_bounds[0])
            & (action.production <= cfg.production_bounds[1])
        )
        return price_ok & ad_ok & production_ok

    def finalize_action(
        self,
        suggestion: Action,
        price: Optional[float] = None,
        ad_spend: Optional[float] = None,
        production: Optional[int] = None,
    ) -> Action:
        """Replace any subset of the suggested fields, clamping each override.

        Args:
            suggestion: Plan proposed by the advisor.
            price: Caller price, or None to keep the suggestion.
            ad_spend: Caller ad spend, or None to keep the suggestion.
            production: Caller production, or None to keep the suggestion.

        Returns:
            Finalized action.
        """
        chosen = make_action(
            suggestion.price if price is None else price,
            suggestion.ad_spend if ad_spend is None else ad_spend,
            suggestion.production if production is None else production,
        )
        return self.clamp_action(chosen)

    def suggest(self, state: SessionState, event: MarketEvent) -> Action:
        """Advisor's plan for the current state and event."""
        return self.policy(
            state.weights, state.inventory, state.proxy, event.ad_shock, event.price_shock
        )

    def advance_period(
        self,
        state: SessionState,
        key: Key,
        decide: Optional[DecideFn] = None,
    ) -> Tuple[SessionState, PeriodSnapshot]:
        """Run one full period in the required order.

        Args:
            state: Session state at the start of the period.
            key: Period key; split into (drift, event, demand, proxy).
            decide: Optional callback seeing the event and suggestion. It
                returns an override Action or None to accept. When given, the
                period runs eagerly and an override outside the allowed
                domain raises ValueError.

        Returns:
            Tuple of (next_state, snapshot).
        """
        k_drift, k_event, k_demand, k_proxy = jax.random.split(key, 4)

        market = self.market.drift(k_drift, state.market)
        event = self.market.sample_event(k_event)
        suggestion = self.suggest(state, event)

        action = suggestion
        if decide is not None:
            override = decide(event, suggestion, state)
            if override is not None:
                if not bool(self.is_valid_action(override)):
                    raise ValueError(
                        f"action outside allowed domain: price={float(override.price)}, "
                        f"ad_spend={float(override.ad_spend)}, "
                        f"production={int(override.production)}"
                    )
                action = override
        action = self.clamp_action(action)

        available = state.inventory + action.production
        demand = self.market.realize_demand(
            k_demand, market, action.price, action.ad_spend, event, available
        )
        sold = jnp.minimum(demand, available)
        inventory = available - sold

        revenue = sold * action.price
        cost = (
            action.production * self.config.unit_cost
            + action.ad_spend
            + self.config.fixed_cost
        )
        profit = revenue - cost
        cash = state.cash + profit

        # the advisor only ever sees censored sales, never `demand`
        weights = self.advisor.learn(
            state.weights,
            action.price,
            action.ad_spend,
            state.proxy,
            available,
            sold,
            event.ad_shock,
            event.price_shock,
        )

        window, count = self.proxy_tracker.record(state.sales_window, state.sales_count, sold)
        proxy = self.proxy_tracker.update(k_proxy, window, count, state.proxy)

        next_state = SessionState(
            market=market,
            weights=weights,
            proxy=proxy,
            inventory=inventory,
            cash=cash,
            sales_window=window,
            sales_count=count,
            period=state.period + 1,
        )
        snapshot = PeriodSnapshot(
            period=next_state.period,
            event_index=event.index,
            base_shock=event.base_shock,
            base_demand=market.base_demand,
            price=action.price,
            ad_spend=action.ad_spend,
            production=action.production,
            demand=demand,
            sold=sold,
            inventory_end=inventory,
            revenue=revenue,
            cost=cost,
            profit=profit,
            cash=cash,
            proxy=proxy,
        )
        return next_state, snapshot

    def step(self, state: SessionState, key: Key) -> Tuple[SessionState, PeriodSnapshot]:
        """Autopilot period: the suggestion is always accepted (jittable)."""
        return self.advance_period(state, key)

    def reset(self, *, key: Key) -> SessionState:
        return self.init_state(key)

    def is_bankrupt(self, state: SessionState) -> jax.Array:
        return state.cash < self.config.bankruptcy_threshold

    def play(
        self,
        key: Key,
        decide: Optional[DecideFn] = None,
        periods: Optional[int] = None,
    ) -> Tuple[SessionState, PeriodSnapshot]:
        """Play a session eagerly, stopping early on bankruptcy.

        Args:
            key: Session key; one sub-key is split off per period.
            decide: Optional per-period override callback.
            periods: Number of periods (defaults to config.horizon).

        Returns:
            Tuple of (final_state, stacked snapshots).
        """
        periods = self.config.horizon if periods is None else periods
        if periods <= 0:
            raise ValueError(f"periods must be positive, got {periods}")

        key, init_key = jax.random.split(key)
        state = self.init_state(init_key)
        snapshots: List[PeriodSnapshot] = []

        for _ in range(periods):
            key, subkey = jax.random.split(key)
            state, snapshot = self.advance_period(state, subkey, decide)
            snapshots.append(snapshot)
            logger.info(
                "period %d: %s | price=%.2f ad=%.2f produce=%d | sold=%d profit=%.2f "
                "cash=%.2f proxy=%.2f",
                int(snapshot.period),
                EVENT_NAMES[int(snapshot.event_index)],
                float(snapshot.price),
                float(snapshot.ad_spend),
                int(snapshot.production),
                int(snapshot.sold),
                float(snapshot.profit),
                float(snapshot.cash),
                float(snapshot.proxy),
            )
            logger.debug("advisor weights: %s", format_weights(state.weights))
            if bool(self.is_bankrupt(state)):
                logger.warning(
                    "cash %.2f below %.2f after period %d, ending session",
                    float(state.cash),
                    self.config.bankruptcy_threshold,
                    int(state.period),
                )
                break

        return state, stack_snapshots(snapshots)


def summarize(snapshots: PeriodSnapshot, state: SessionState) -> SessionSummary:
    """Totals of a played session.

    Args:
        snapshots: Stacked per-period snapshots.
        state: Final session state.

    Returns:
        Session summary.
    """
    return SessionSummary(
        total_profit=float(jnp.sum(snapshots.profit)),
        total_sold=int(jnp.sum(snapshots.sold)),
        final_cash=float(state.cash),
        final_inventory=int(state.inventory),
        periods=int(snapshots.period.shape[0]),
    )
