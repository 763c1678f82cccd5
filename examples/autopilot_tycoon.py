"""Autopilot comparison for AI Tycoon.

Runs many scanned sessions where the learning advisor's plan is always
accepted, compares them with a fixed plan baseline, and plots how the public
proxy tracks the hidden baseline demand.
"""

import jax
import jax.numpy as jnp
import matplotlib.pyplot as plt
from typing import Dict

from core.simulator import rollout
from problems.ai_tycoon import (
    FixedPlanPolicy,
    TycoonConfig,
    TycoonSession,
)


def evaluate_session(
    session: TycoonSession,
    key: jax.Array,
    n_sessions: int = 200,
) -> Dict[str, float]:
    """Statistics of total profit over independent sessions.

    Args:
        session: Session wiring (market, advisor, policy).
        key: Random key.
        n_sessions: Number of sessions to run.

    Returns:
        Dictionary of statistics.
    """
    keys = jax.random.split(key, n_sessions)
    horizon = session.config.horizon
    _, snaps = jax.vmap(lambda k: rollout(session, horizon, key=k))(keys)
    totals = jnp.sum(snaps.profit, axis=1)

    return {
        "mean_profit": float(jnp.mean(totals)),
        "std_profit": float(jnp.std(totals)),
        "min_profit": float(jnp.min(totals)),
        "max_profit": float(jnp.max(totals)),
        "mean_sold": float(jnp.mean(jnp.sum(snaps.sold, axis=1))),
        "stockout_rate": float(jnp.mean(snaps.sold < snaps.demand)),
    }


def plot_session(snaps, filename: str = "ai_tycoon_session.png") -> None:
    """Plot one session's demand signals and profit."""
    weeks = snaps.period.tolist()
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(14, 5))

    ax1.plot(weeks, snaps.base_demand.tolist(), color='black', label='Hidden baseline')
    ax1.plot(weeks, snaps.proxy.tolist(), color='orange', label='Public proxy')
    ax1.plot(weeks, snaps.demand.tolist(), color='blue', alpha=0.4, label='Demand')
    ax1.plot(weeks, snaps.sold.tolist(), color='green', alpha=0.6, label='Sold')
    ax1.set_xlabel('Week')
    ax1.set_ylabel('Units')
    ax1.set_title('Demand Signals')
    ax1.legend()
    ax1.grid(True, alpha=0.3)

    ax2.bar(weeks, snaps.profit.tolist(), color='purple', alpha=0.6)
    ax2.set_xlabel('Week')
    ax2.set_ylabel('Profit ($)')
    ax2.set_title('Weekly Profit')
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(filename, dpi=150, bbox_inches='tight')
    print(f"\nSaved session plot to: {filename}")
    plt.show()


def main():
    """Compare the advisor with a fixed plan."""
    config = TycoonConfig(horizon=24)

    print("AI Tycoon - Autopilot")
    print("=" * 70)
    print(f"Horizon: {config.horizon} weeks")
    print(f"Unit cost: ${config.unit_cost:.2f} | Fixed cost: ${config.fixed_cost:.2f}")

    sessions = {
        "Learning advisor (grid search)": TycoonSession(config),
        "Fixed plan ($20, $1000 ads, 50 units)": TycoonSession(
            config, policy=FixedPlanPolicy(price=20.0, ad_spend=1000.0, production=50)
        ),
    }

    key = jax.random.PRNGKey(42)
    for name, session in sessions.items():
        key, subkey = jax.random.split(key)
        stats = evaluate_session(session, subkey)
        print(f"\n{name}:")
        print(f"  Mean total profit: ${stats['mean_profit']:.2f} ± ${stats['std_profit']:.2f}")
        print(f"  Range: [${stats['min_profit']:.2f}, ${stats['max_profit']:.2f}]")
        print(f"  Mean units sold: {stats['mean_sold']:.1f}")
        print(f"  Stockout rate: {stats['stockout_rate']:.1%}")

    key, subkey = jax.random.split(key)
    _, snaps = rollout(sessions["Learning advisor (grid search)"], config.horizon, key=subkey)
    plot_session(snaps)


if __name__ == "__main__":
    main()
