"""JAX-native planning policies for AI Tycoon.

This module implements plan selection policies that map the advisor's
current beliefs to an Action (price, ad spend, production):
- Grid search: exhaustive enumeration of a fixed grid, maximising the
  profit predicted by the demand model (the default advisor)
- Fixed plan: always returns the same plan (baselines, scripted players)
"""

from typing import NamedTuple, Protocol, Tuple
from functools import partial
from jaxtyping import Array, Float, Int
import jax
import jax.numpy as jnp

from .advisor import DemandModel, DemandWeights
from .model import TycoonConfig


class Action(NamedTuple):
    """Operating plan for one period.

    Attributes:
        price: Unit selling price.
        ad_spend: Advertising spend.
        production: Units to produce (added to inventory before sales).
    """
    price: Float[Array, ""]
    ad_spend: Float[Array, ""]
    production: Int[Array, ""]


def make_action(price: float, ad_spend: float, production: int) -> Action:
    """Build an Action with the dtypes used throughout the session."""
    return Action(
        price=jnp.asarray(price, dtype=jnp.float32),
        ad_spend=jnp.asarray(ad_spend, dtype=jnp.float32),
        production=jnp.asarray(production, dtype=jnp.int32),
    )


def grid_axis(lo: float, hi: float, step: float, dtype: jnp.dtype) -> Array:
    """Inclusive, evenly spaced axis lo, lo + step, ..., <= hi."""
    n = int((hi - lo) // step) + 1
    return (lo + step * jnp.arange(n)).astype(dtype)


class PlanPolicy(Protocol):
    def __call__(
        self,
        weights: DemandWeights,
        inventory: Int[Array, ""],
        base_proxy: Float[Array, ""],
        event_ad_mult: Float[Array, ""],
        event_price_mult: Float[Array, ""],
    ) -> Action: ...


class GridSearchPolicy:
    """Exhaustive grid search over (price, ad spend, production).

    Every grid point is scored with the profit the demand model predicts:
        available = inventory + production
        sale = min(round(predict(price, ad, proxy, available)), available)
        profit = sale * price - (production * unit_cost + ad + fixed_cost)

    The best point wins; ties go to the point enumerated first (price
    ascending, then ad spend, then production). The search is a pure function
    of the weights and inputs and never draws random numbers.

    Example:
        >>> config = TycoonConfig()
        >>> advisor = DemandModel(config)
        >>> policy = GridSearchPolicy(advisor)
        >>> action = policy(advisor.init_weights(), 40, 50.0, 0.0, 0.0)
    """

    def __init__(self, advisor: DemandModel) -> None:
        """Initialize policy.

        Args:
            advisor: Demand model used to score plans.
        """
        self.advisor = advisor
        self.config: TycoonConfig = advisor.config
        self.prices = grid_axis(*self.config.price_grid, dtype=jnp.float32)
        self.ad_spends = grid_axis(*self.config.ad_grid, dtype=jnp.float32)
        self.productions = grid_axis(*self.config.production_grid, dtype=jnp.int32)

    @property
    def grid_shape(self) -> Tuple[int, int, int]:
        return (self.prices.shape[0], self.ad_spends.shape[0], self.productions.shape[0])

    @partial(jax.jit, static_argnums=(0,))
    def profit_surface(
        self,
        weights: DemandWeights,
        inventory: Int[Array, ""],
        base_proxy: Float[Array, ""],
        event_ad_mult: Float[Array, ""] = 0.0,
        event_price_mult: Float[Array, ""] = 0.0,
    ) -> Float[Array, "n_price n_ad n_production"]:
        """Predicted profit at every grid point, indexed [price, ad, production]."""
        price = self.prices[:, None, None]
        ad = self.ad_spends[None, :, None]
        production = self.productions[None, None, :]
        available = inventory + production

        demand_hat = self.advisor.predict(
            weights, price, ad, base_proxy, available,
            event_ad_mult, event_price_mult,
        )
        # whole units, rounded half up (demand_hat >= 0)
        sale = jnp.minimum(jnp.floor(demand_hat + 0.5), available)
        revenue = sale * price
        cost = production * self.config.unit_cost + ad + self.config.fixed_cost
        return revenue - cost

    @partial(jax.jit, static_argnums=(0,))
    def __call__(
        self,
        weights: DemandWeights,
        inventory: Int[Array, ""],
        base_proxy: Float[Array, ""],
        event_ad_mult: Float[Array, ""] = 0.0,
        event_price_mult: Float[Array, ""] = 0.0,
    ) -> Action:
        """Suggest the plan with the highest predicted profit.

        Args:
            weights: Current demand model weights.
            inventory: Units on hand before production.
            base_proxy: Public demand proxy.
            event_ad_mult: Event modifier on ad effectiveness.
            event_price_mult: Event modifier on price sensitivity.

        Returns:
            Best action on the grid.
        """
        profit = self.profit_surface(
            weights, inventory, base_proxy, event_ad_mult, event_price_mult
        )
        # argmax returns the first maximum in C order, i.e. enumeration order
        i, j, k = jnp.unravel_index(jnp.argmax(profit), profit.shape)
        return Action(
            price=self.prices[i],
            ad_spend=self.ad_spends[j],
            production=self.productions[k],
        )


class FixedPlanPolicy:
    """Always returns the same plan, ignoring the advisor's beliefs.

    Example:
        >>> policy = FixedPlanPolicy(price=20.0, ad_spend=1000.0, production=50)
    """

    def __init__(self, price: float = 20.0, ad_spend: float = 1000.0, production: int = 50) -> None:
        """Initialize policy.

        Args:
            price: Unit selling price.
            ad_spend: Advertising spend.
            production: Units produced every period.
        """
        self.action = make_action(price, ad_spend, production)

    def __call__(
        self,
        weights: DemandWeights,
        inventory: Int[Array, ""],
        base_proxy: Float[Array, ""],
        event_ad_mult: Float[Array, ""] = 0.0,
        event_price_mult: Float[Array, ""] = 0.0,
    ) -> Action:
        """Return the fixed plan."""
        return self.action
