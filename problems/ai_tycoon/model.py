"""JAX-native market model for the AI Tycoon problem.

This module implements the hidden generative process of a single-product
market:
- Baseline demand drifts stochastically each period (floored)
- One categorical market event is drawn per period
- Realized demand responds to price, advertising and visible stock

State: MarketState(base_demand) - latent baseline, never shown to the advisor
Decision: price, ad spend and production (see policy.Action)
Exogenous: MarketEvent shocks plus Gaussian demand noise
"""

from typing import NamedTuple, Optional, Tuple
from functools import partial
from jaxtyping import Array, Float, Int, PRNGKeyArray
import jax
import jax.numpy as jnp
import chex
from flax import struct


# Type aliases
Demand = Int[Array, ""]  # realized (uncensored) demand in units
Key = PRNGKeyArray


# name, base_shock, ad_shock, price_shock
EVENT_TABLE: Tuple[Tuple[str, float, float, float], ...] = (
    ("Viral Trend", 20.0, 0.50, -0.10),
    ("New Competitor", -15.0, -0.10, 0.25),
    ("Supply News (positive)", 5.0, 0.05, -0.05),
    ("Macro Slump", -10.0, -0.10, 0.15),
    ("Nothing Special", 0.0, 0.0, 0.0),
)
EVENT_NAMES: Tuple[str, ...] = tuple(row[0] for row in EVENT_TABLE)
NEUTRAL_EVENT_INDEX = 4


class MarketEvent(NamedTuple):
    """Exogenous market event for one period.

    Attributes:
        index: Row of EVENT_TABLE the event was drawn from.
        base_shock: Additive offset on baseline demand.
        ad_shock: Multiplicative modifier on advertising effectiveness.
        price_shock: Multiplicative modifier on price sensitivity.
    """
    index: Int[Array, ""]
    base_shock: Float[Array, ""]
    ad_shock: Float[Array, ""]
    price_shock: Float[Array, ""]


def make_event(index: int) -> MarketEvent:
    """Build the MarketEvent stored at a row of EVENT_TABLE."""
    _, base, ad, price = EVENT_TABLE[index]
    return MarketEvent(
        index=jnp.array(index, dtype=jnp.int32),
        base_shock=jnp.array(base),
        ad_shock=jnp.array(ad),
        price_shock=jnp.array(price),
    )


def event_name(event: MarketEvent) -> str:
    """Human readable label of an event (host side only)."""
    return EVENT_NAMES[int(event.index)]


NEUTRAL_EVENT = make_event(NEUTRAL_EVENT_INDEX)


@struct.dataclass
class MarketState:
    base_demand: jnp.ndarray  # latent baseline (shape = ())


@chex.dataclass(frozen=True)
class TycoonConfig:
    """Configuration for the AI Tycoon problem.

    Attributes:
        initial_inventory: Units on hand at the start of the session.
        initial_cash: Opening cash balance.
        unit_cost: Production cost per unit.
        fixed_cost: Overhead charged every period.
        horizon: Number of periods in a full session.
        bankruptcy_threshold: Cash level below which the session ends early.
        initial_base_demand: Starting latent baseline demand.
        price_sensitivity: True demand drop per currency unit of price.
        ad_effect: True demand lift per log-currency of ad spend.
        demand_drift: Deterministic per-period drift of the baseline.
        drift_std: Standard deviation of the baseline random walk.
        base_demand_floor: Lower bound on the baseline after drift.
        noise_std: Standard deviation of realized demand noise.
        availability_boost: Demand lift per unit of available inventory.
        event_probabilities: Probability mass of each EVENT_TABLE row.
        initial_proxy: Starting value of the public demand proxy.
        proxy_smoothing: Weight kept on the previous proxy value.
        proxy_noise_std: Standard deviation of the proxy corruption noise.
        proxy_window: Number of recent periods averaged into the proxy.
        learning_rate: SGD step size of the demand model.
        prior_weights: Initial (w0, w_price, w_ad, w_proxy, w_inventory).
        weight_lower: Lower clamp bound of each weight.
        weight_upper: Upper clamp bound of each weight.
        price_grid: (min, max, step) of the searched price grid.
        ad_grid: (min, max, step) of the searched ad spend grid.
        production_grid: (min, max, step) of the searched production grid.
        price_bounds: Allowed (min, max) price of a finalized action.
        ad_bounds: Allowed (min, max) ad spend of a finalized action.
        production_bounds: Allowed (min, max) production of a finalized action.
    """
    initial_inventory: int = 40
    initial_cash: float = 20000.0
    unit_cost: float = 8.0
    fixed_cost: float = 1200.0
    horizon: int = 12
    bankruptcy_threshold: float = -5000.0
    initial_base_demand: float = 60.0
    price_sensitivity: float = 1.4
    ad_effect: float = 9.0
    demand_drift: float = 0.2
    drift_std: float = 0.8
    base_demand_floor: float = 5.0
    noise_std: float = 6.0
    availability_boost: float = 0.08
    event_probabilities: Tuple[float, ...] = (0.10, 0.10, 0.10, 0.10, 0.60)
    initial_proxy: float = 50.0
    proxy_smoothing: float = 0.7
    proxy_noise_std: float = 3.0
    proxy_window: int = 3
    learning_rate: float = 0.0015
    prior_weights: Tuple[float, ...] = (40.0, 1.0, 8.0, 0.5, 0.1)
    weight_lower: Tuple[float, ...] = (-200.0, -10.0, -40.0, -5.0, -0.5)
    weight_upper: Tuple[float, ...] = (300.0, 10.0, 40.0, 5.0, 0.5)
    price_grid: Tuple[float, float, float] = (9.0, 40.0, 1.0)
    ad_grid: Tuple[float, float, float] = (0.0, 8000.0, 500.0)
    production_grid: Tuple[int, int, int] = (0, 120, 10)
    price_bounds: Tuple[float, float] = (9.0, 40.0)
    ad_bounds: Tuple[float, float] = (0.0, 10000.0)
    production_bounds: Tuple[int, int] = (0, 200)

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.initial_inventory < 0:
            raise ValueError(
                f"initial_inventory must be non-negative, got {self.initial_inventory}"
            )
        if self.unit_cost < 0 or self.fixed_cost < 0:
            raise ValueError("Costs must be non-negative")
        if self.horizon <= 0:
            raise ValueError(f"horizon must be positive, got {self.horizon}")
        if self.base_demand_floor <= 0:
            raise ValueError(
                f"base_demand_floor must be positive, got {self.base_demand_floor}"
            )
        if self.drift_std < 0 or self.noise_std < 0 or self.proxy_noise_std < 0:
            raise ValueError("Noise standard deviations must be non-negative")
        if len(self.event_probabilities) != len(EVENT_TABLE):
            raise ValueError(
                f"event_probabilities needs {len(EVENT_TABLE)} entries, "
                f"got {len(self.event_probabilities)}"
            )
        if min(self.event_probabilities) < 0 or abs(sum(self.event_probabilities) - 1.0) > 1e-6:
            raise ValueError("event_probabilities must be non-negative and sum to 1")
        if not (0.0 <= self.proxy_smoothing <= 1.0):
            raise ValueError(
                f"proxy_smoothing must be in [0, 1], got {self.proxy_smoothing}"
            )
        if self.proxy_window <= 0:
            raise ValueError(f"proxy_window must be positive, got {self.proxy_window}")
        if self.learning_rate < 0:
            raise ValueError(
                f"learning_rate must be non-negative, got {self.learning_rate}"
            )
        for name in ("prior_weights", "weight_lower", "weight_upper"):
            if len(getattr(self, name)) != 5:
                raise ValueError(f"{name} must have 5 entries")
        if any(lo > hi for lo, hi in zip(self.weight_lower, self.weight_upper)):
            raise ValueError("weight_lower must not exceed weight_upper")
        for name in ("price_grid", "ad_grid", "production_grid"):
            lo, hi, step = getattr(self, name)
            if step <= 0 or hi < lo:
                raise ValueError(f"{name} must satisfy min <= max and step > 0")
        for name in ("price_bounds", "ad_bounds", "production_bounds"):
            lo, hi = getattr(self, name)
            if hi < lo:
                raise ValueError(f"{name} must satisfy min <= max")
        if self.production_grid[0] < 0 or self.production_bounds[0] < 0:
            raise ValueError("Production must be non-negative")


class MarketModel:
    """JAX-native model of the hidden market.

    The baseline follows a floored random walk with drift:
        base_{t+1} = max(floor, base_t + drift + N(0, drift_std))

    Realized demand for a plan is:
        mu = base + event.base_shock
             - price_sensitivity * price * (1 + event.price_shock)
             + ad_effect * log(1 + ad_spend) * (1 + event.ad_shock)
             + availability_boost * inventory_available
        demand = round(max(0, mu + N(0, noise_std)))

    Only realized sales are observable; the true coefficients never leave
    this class.

    Example:
        >>> config = TycoonConfig()
        >>> model = MarketModel(config)
        >>> key = jax.random.PRNGKey(0)
        >>> state = model.init_state(key)
        >>> k_drift, k_event, k_demand = jax.random.split(key, 3)
        >>> state = model.drift(k_drift, state)
        >>> event = model.sample_event(k_event)
        >>> demand = model.realize_demand(k_demand, state, 20.0, 1000.0, event, 60)
    """

    def __init__(self, config: TycoonConfig) -> None:
        """Initialize model.

        Args:
            config: Model configuration.
        """
        self.config = config
        self._thresholds = jnp.cumsum(jnp.array(config.event_probabilities))[:-1]
        self._event_shocks = jnp.array([row[1:] for row in EVENT_TABLE])

    def init_state(self, key: Key) -> MarketState:
        """Initialize the hidden market state.

        Args:
            key: Random key (unused, for consistency).

        Returns:
            Initial market state.
        """
        return MarketState(base_demand=jnp.array(self.config.initial_base_demand))

    @partial(jax.jit, static_argnums=(0,))
    def drift(self, key: Key, state: MarketState) -> MarketState:
        """Advance the latent baseline by one period.

        Args:
            key: Random key for the random-walk step.
            state: Current market state.

        Returns:
            Drifted market state (baseline floored).
        """
        step = self.config.demand_drift + jax.random.normal(key) * self.config.drift_std
        base = jnp.maximum(self.config.base_demand_floor, state.base_demand + step)
        return state.replace(base_demand=base)

    @partial(jax.jit, static_argnums=(0,))
    def sample_event(self, key: Key) -> MarketEvent:
        """Draw this period's market event.

        A single uniform draw is mapped onto the cumulative event
        probabilities, so exactly one event is always returned.

        Args:
            key: Random key.

        Returns:
            Sampled market event.
        """
        u = jax.random.uniform(key)
        index = jnp.searchsorted(self._thresholds, u, side="right").astype(jnp.int32)
        shocks = self._event_shocks[index]
        return MarketEvent(
            index=index,
            base_shock=shocks[0],
            ad_shock=shocks[1],
            price_shock=shocks[2],
        )

    @partial(jax.jit, static_argnums=(0,))
    def mean_demand(
        self,
        state: MarketState,
        price: Float[Array, ""],
        ad_spend: Float[Array, ""],
        event: MarketEvent,
        inventory_available: Int[Array, ""],
    ) -> Float[Array, ""]:
        """Latent mean demand before observation noise.

        Args:
            state: Current market state.
            price: Unit price.
            ad_spend: Advertising spend.
            event: Active market event.
            inventory_available: Units on hand for sale this period.

        Returns:
            Mean demand (may be negative).
        """
        return (
            state.base_demand
            + event.base_shock
            - self.config.price_sensitivity * price * (1.0 + event.price_shock)
            + self.config.ad_effect * jnp.log1p(ad_spend) * (1.0 + event.ad_shock)
            + self.config.availability_boost * inventory_available
        )

    @partial(jax.jit, static_argnums=(0,))
    def _realize(
        self,
        key: Key,
        state: MarketState,
        price: Float[Array, ""],
        ad_spend: Float[Array, ""],
        event: MarketEvent,
        inventory_available: Int[Array, ""],
    ) -> Demand:
        mu = self.mean_demand(state, price, ad_spend, event, inventory_available)
        demand = jnp.maximum(0.0, mu + jax.random.normal(key) * self.config.noise_std)
        # round half up; demand is non-negative here
        return jnp.floor(demand + 0.5).astype(jnp.int32)

    def realize_demand(
        self,
        key: Key,
        state: MarketState,
        price: Float[Array, ""],
        ad_spend: Float[Array, ""],
        event: Optional[MarketEvent] = None,
        inventory_available: Int[Array, ""] = 0,
    ) -> Demand:
        """Realize true (uncensored) demand for one period.

        The caller caps the result at available inventory to obtain units
        sold.

        Args:
            key: Random key for observation noise.
            state: Current market state.
            price: Unit price.
            ad_spend: Advertising spend.
            event: Active market event (neutral when omitted).
            inventory_available: Units on hand for sale this period.

        Returns:
            Non-negative integer demand.
        """
        if event is None:
            event = NEUTRAL_EVENT
        return self._realize(
            key,
            state,
            jnp.asarray(price, dtype=jnp.float32),
            jnp.asarray(ad_spend, dtype=jnp.float32),
            event,
            jnp.asarray(inventory_available, dtype=jnp.int32),
        )
