"""Online linear demand model used by the AI advisor.

The advisor believes demand follows
    demand_hat = w0 - w_price * price * (1 + price_mult)
                 + w_ad * log(1 + ad) * (1 + ad_mult)
                 + w_proxy * proxy + w_inventory * inventory_available
and refines the five weights with one SGD step per period.

Learning uses units SOLD, which are capped by inventory. During stockouts the
label understates true demand and biases the weights downward; this mirrors
what a real advisor observes and is kept on purpose.
"""

from typing import NamedTuple
from functools import partial
from jaxtyping import Array, Float, Int
import jax
import jax.numpy as jnp
import optax

from .model import TycoonConfig


class DemandWeights(NamedTuple):
    """Learnable weights of the advisor's demand model.

    Attributes:
        w0: Intercept (baseline demand guess).
        w_price: Price sensitivity, applied to the negated price feature.
        w_ad: Ad effectiveness on the log scale.
        w_proxy: Belief in the public demand proxy.
        w_inventory: Availability boost per unit on hand.
    """
    w0: Float[Array, ""]
    w_price: Float[Array, ""]
    w_ad: Float[Array, ""]
    w_proxy: Float[Array, ""]
    w_inventory: Float[Array, ""]


def demand_features(
    price: Float[Array, "..."],
    ad_spend: Float[Array, "..."],
    base_proxy: Float[Array, "..."],
    inventory_available: Int[Array, "..."],
    event_ad_mult: Float[Array, "..."] = 0.0,
    event_price_mult: Float[Array, "..."] = 0.0,
) -> DemandWeights:
    """Engineered features, laid out like DemandWeights for a dot product."""
    x_price = -price * (1.0 + event_price_mult)
    x_ad = jnp.log1p(ad_spend) * (1.0 + event_ad_mult)
    x_inventory = jnp.asarray(inventory_available, dtype=jnp.float32)
    return DemandWeights(
        w0=jnp.array(1.0),
        w_price=x_price,
        w_ad=x_ad,
        w_proxy=jnp.asarray(base_proxy, dtype=jnp.float32),
        w_inventory=x_inventory,
    )


def linear_demand(weights: DemandWeights, features: DemandWeights) -> Float[Array, "..."]:
    """Unclamped linear combination w . x."""
    return (
        weights.w0 * features.w0
        + weights.w_price * features.w_price
        + weights.w_ad * features.w_ad
        + weights.w_proxy * features.w_proxy
        + weights.w_inventory * features.w_inventory
    )


def format_weights(weights: DemandWeights) -> str:
    """One-line summary of the model weights for display."""
    return (
        f"w0={float(weights.w0):.3f}, wP={float(weights.w_price):.3f}, "
        f"wA={float(weights.w_ad):.3f}, wB={float(weights.w_proxy):.3f}, "
        f"wI={float(weights.w_inventory):.3f}"
    )


class DemandModel:
    """Advisor's online linear demand model.

    Weights are plain pytrees, so every method is a pure function of
    (weights, inputs). The session owns the current weights and replaces them
    with the output of ``learn`` once per period.

    Example:
        >>> config = TycoonConfig()
        >>> advisor = DemandModel(config)
        >>> weights = advisor.init_weights()
        >>> advisor.predict(weights, 20.0, 1000.0, 50.0, 60)
        >>> weights = advisor.learn(weights, 20.0, 1000.0, 50.0, 60, 80)
    """

    def __init__(self, config: TycoonConfig) -> None:
        """Initialize model.

        Args:
            config: Problem configuration (learning rate, priors, bounds).
        """
        self.config = config
        self.tx = optax.sgd(config.learning_rate)
        self.lower = DemandWeights(*config.weight_lower)
        self.upper = DemandWeights(*config.weight_upper)

    def init_weights(self) -> DemandWeights:
        """Analyst prior weights."""
        return DemandWeights(*(jnp.array(w) for w in self.config.prior_weights))

    @partial(jax.jit, static_argnums=(0,))
    def predict(
        self,
        weights: DemandWeights,
        price: Float[Array, "..."],
        ad_spend: Float[Array, "..."],
        base_proxy: Float[Array, "..."],
        inventory_available: Int[Array, "..."],
        event_ad_mult: Float[Array, "..."] = 0.0,
        event_price_mult: Float[Array, "..."] = 0.0,
    ) -> Float[Array, "..."]:
        """Predict demand, floored at zero.

        Broadcasts over its inputs, which the grid search relies on.

        Args:
            weights: Current model weights.
            price: Unit price.
            ad_spend: Advertising spend.
            base_proxy: Public demand proxy.
            inventory_available: Units available for sale.
            event_ad_mult: Event modifier on ad effectiveness.
            event_price_mult: Event modifier on price sensitivity.

        Returns:
            Non-negative predicted demand.
        """
        features = demand_features(
            price, ad_spend, base_proxy, inventory_available,
            event_ad_mult, event_price_mult,
        )
        return jnp.maximum(0.0, linear_demand(weights, features))

    @partial(jax.jit, static_argnums=(0,))
    def learn(
        self,
        weights: DemandWeights,
        price: Float[Array, ""],
        ad_spend: Float[Array, ""],
        base_proxy: Float[Array, ""],
        inventory_available: Int[Array, ""],
        sold: Int[Array, ""],
        event_ad_mult: Float[Array, ""] = 0.0,
        event_price_mult: Float[Array, ""] = 0.0,
    ) -> DemandWeights:
        """One SGD step on the squared error of the observed sale.

        The gradient of 0.5 * (sold - yhat)**2 is -(sold - yhat) * x, so the
        plain SGD update is w += lr * err * x. Weights are clamped afterwards.

        Args:
            weights: Current model weights.
            price: Chosen unit price.
            ad_spend: Chosen ad spend.
            base_proxy: Proxy value the plan was made with.
            inventory_available: Units that were available for sale.
            sold: Units actually sold (censored by inventory).
            event_ad_mult: Event modifier on ad effectiveness.
            event_price_mult: Event modifier on price sensitivity.

        Returns:
            Updated, clamped weights.
        """
        features = demand_features(
            price, ad_spend, base_proxy, inventory_available,
            event_ad_mult, event_price_mult,
        )
        target = jnp.asarray(sold, dtype=jnp.float32)

        def loss_fn(w: DemandWeights) -> Float[Array, ""]:
            # yhat is not floored here, unlike predict()
            return 0.5 * (target - linear_demand(w, features)) ** 2

        grads = jax.grad(loss_fn)(weights)
        updates, _ = self.tx.update(grads, self.tx.init(weights))
        new_weights = optax.apply_updates(weights, updates)
        return jax.tree_util.tree_map(jnp.clip, new_weights, self.lower, self.upper)

    @partial(jax.jit, static_argnums=(0,))
    def error(
        self,
        weights: DemandWeights,
        price: Float[Array, ""],
        ad_spend: Float[Array, ""],
        base_proxy: Float[Array, ""],
        inventory_available: Int[Array, ""],
        sold: Int[Array, ""],
        event_ad_mult: Float[Array, ""] = 0.0,
        event_price_mult: Float[Array, ""] = 0.0,
    ) -> Float[Array, ""]:
        """Signed residual sold - yhat that ``learn`` would step on."""
        features = demand_features(
            price, ad_spend, base_proxy, inventory_available,
            event_ad_mult, event_price_mult,
        )
        return sold - linear_demand(weights, features)
