"""Run the parameter sweep (load, buffers, service, deadlines) and plot it."""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def main() -> None:
    from eval.run_sweep import main as run_sweep
    from eval.plots import plot_sweep_bars
    import argparse
    p = argparse.ArgumentParser()
    p.add_argument("--config", type=str, default=None)
    p.add_argument("--results_dir", type=str, default="results")
    p.add_argument("--n_episodes", type=int, default=30)
    p.add_argument("--seed", type=int, default=0)
    args = p.parse_args()
    out_csv = run_sweep(
        config_path=args.config,
        results_dir=args.results_dir,
        n_episodes=args.n_episodes,
        base_seed=args.seed,
    )
    print(f"Saved {plot_sweep_bars(out_csv)}")


if __name__ == "__main__":
    main()
