"""Interactive console game for AI Tycoon.

Each week the advisor suggests a plan. Press Enter (or "y") to accept it, or
"n" to type your own price, ad spend and production. Blank answers keep the
advisor's value for that field.
"""

import logging
from typing import Optional

import jax

from problems.ai_tycoon import (
    Action,
    MarketEvent,
    SessionState,
    TycoonConfig,
    TycoonSession,
    event_name,
    format_weights,
    summarize,
)


def ask_float(prompt: str) -> Optional[float]:
    answer = input(prompt).strip()
    return float(answer) if answer else None


def ask_int(prompt: str) -> Optional[int]:
    answer = input(prompt).strip()
    return int(answer) if answer else None


def make_console_decider(session: TycoonSession):
    """Build a decide callback that talks to the player."""
    cfg = session.config

    def decide(event: MarketEvent, suggestion: Action, state: SessionState) -> Optional[Action]:
        print(f"\n==== Week {int(state.period) + 1} ====")
        print(f"Market event: {event_name(event)}")
        print(
            f"AI suggests -> Price: ${float(suggestion.price):.2f}"
            f" | Ad: ${float(suggestion.ad_spend):.2f}"
            f" | Produce: {int(suggestion.production)} units"
        )
        print(f"  AI model weights: {format_weights(state.weights)}")

        answer = input("Accept AI plan? (y/n) ").strip().lower()
        if not answer.startswith("n"):
            return None

        price = ask_float(f"Enter your Price [${cfg.price_bounds[0]:.0f}..${cfg.price_bounds[1]:.0f}]: ")
        ad_spend = ask_float(f"Enter your Ad Spend [${cfg.ad_bounds[0]:.0f}..${cfg.ad_bounds[1]:.0f}]: ")
        production = ask_int(
            f"Enter your Production [{cfg.production_bounds[0]}..{cfg.production_bounds[1]}]: "
        )
        return session.finalize_action(suggestion, price, ad_spend, production)

    return decide


def main():
    """Play one session."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    config = TycoonConfig()
    session = TycoonSession(config)

    print("=" * 70)
    print("AI TYCOON - The Business Brain")
    print("=" * 70)
    print(f"Goal: grow profits over {config.horizon} weeks with an advisor that learns.")
    print(
        f"Unit production cost = ${config.unit_cost:.0f}. "
        f"Fixed weekly overhead = ${config.fixed_cost:.0f}."
    )
    print(
        f"You begin with {config.initial_inventory} units and "
        f"${config.initial_cash:,.0f} cash."
    )

    state, snapshots = session.play(jax.random.PRNGKey(12345), make_console_decider(session))

    for snap_period, base, proxy in zip(
        snapshots.period.tolist(), snapshots.base_demand.tolist(), snapshots.proxy.tolist()
    ):
        print(f"  Week {snap_period:2d}: hidden baseline {base:6.2f} | public proxy {proxy:6.2f}")

    summary = summarize(snapshots, state)
    print("\n" + "=" * 70)
    print("SUMMARY")
    print("=" * 70)
    print(f"Total Profit: ${summary.total_profit:,.2f} | Total Units Sold: {summary.total_sold}")
    print(f"Final Cash: ${summary.final_cash:,.2f} | Final Inventory: {summary.final_inventory}")
    if summary.periods < config.horizon:
        print("You ran out of cash. Game over early.")
    print("Thanks for playing AI Tycoon!")


if __name__ == "__main__":
    main()
