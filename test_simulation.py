#!/usr/bin/env python3
"""
End-to-end hub tests: full runs, invariants checked after every event,
reproducibility, and the replication / sweep / plotting layer.
"""

import csv
import sys
import tempfile
import unittest
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from hub import HubConfig, Simulation, run_episode
from hub.entities import CargoClass, RequestStatus, TERMINAL_STATUSES
from hub.events import EventKind
from hub.processes import make_rng


def busy_config(horizon=240.0):
    """Overloaded setup so rejections and evictions both occur."""
    return HubConfig.from_params({
        "horizon": horizon,
        "sources": [1.0, 1.0],
        "perishable_share": 0.3,
        "perishable": {
            "buffer_capacity": 2, "min_service": 5, "max_service": 10,
            "deadline_minutes": 3, "devices": 1, "device_capacity": 1,
        },
        "regular": {
            "buffer_capacity": 3, "min_service": 8, "max_service": 15,
            "deadline_minutes": 5, "devices": 1, "device_capacity": 2,
        },
    })


class TestSimulationRun(unittest.TestCase):
    """Full runs of the clock."""

    def test_first_step_is_an_arrival(self):
        sim = Simulation(HubConfig(), make_rng(0))
        event = sim.step()
        self.assertEqual(event.kind, EventKind.ARRIVAL)
        self.assertEqual(sim.now, event.time)
        self.assertEqual(sim.statistics.total_arrivals, 1)

    def test_invariants_hold_after_every_event(self):
        sim = Simulation(busy_config(), make_rng(7))
        buffers = sim.dispatcher.buffers
        devices = sim.dispatcher.devices()
        terminal_seen = {}
        last_time = 0.0

        while (event := sim.step()) is not None:
            self.assertGreaterEqual(event.time, last_time)
            last_time = event.time

            holders = {}
            for buf in buffers.values():
                self.assertLessEqual(len(buf), buf.capacity)
                for req in buf.residents:
                    self.assertNotIn(req.id, holders)
                    holders[req.id] = buf
                    self.assertEqual(req.status, RequestStatus.QUEUED)
                    self.assertIsNotNone(req.deadline)
                    self.assertIsNotNone(req.buffer_slot)
            for dev in devices:
                self.assertLessEqual(dev.load, dev.capacity)
                for req in dev.in_progress:
                    self.assertNotIn(req.id, holders)
                    holders[req.id] = dev
                    self.assertEqual(req.status, RequestStatus.IN_SERVICE)
                    self.assertIsNone(req.deadline)

            for rid, req in sim.requests.items():
                if rid in terminal_seen:
                    self.assertEqual(req.status, terminal_seen[rid])
                elif req.status in TERMINAL_STATUSES:
                    terminal_seen[rid] = req.status
                    self.assertNotIn(rid, holders)

        stats = sim.statistics
        self.assertGreater(stats.total_rejected, 0)
        self.assertGreater(stats.total_evicted, 0)

    def test_conservation(self):
        sim = Simulation(busy_config(), make_rng(3))
        sim.run_until()
        s = sim.statistics
        self.assertEqual(
            s.total_arrivals,
            s.total_completed + s.total_rejected + s.total_evicted + sim.in_flight(),
        )
        summary = sim.summary()
        self.assertEqual(summary["in_flight"], sim.in_flight())
        self.assertEqual(summary["events"], sim.calendar.step_count)

    def test_request_ids_unique_across_sources(self):
        sim = Simulation(HubConfig(horizon=300), make_rng(11))
        sim.run_until()
        ids = sorted(sim.requests)
        self.assertEqual(ids, list(range(1, len(ids) + 1)))
        source_ids = {r.source_id for r in sim.requests.values()}
        self.assertEqual(source_ids, {1, 2, 3})

    def test_source_counters_match_statistics(self):
        sim = Simulation(busy_config(), make_rng(5))
        sim.run_until()
        self.assertEqual(
            sum(s.generated_count for s in sim.sources.values()), sim.statistics.total_arrivals
        )
        self.assertEqual(
            sum(s.rejected_count for s in sim.sources.values()), sim.statistics.total_rejected
        )

    def test_horizon_bounds_the_run(self):
        sim = Simulation(HubConfig(horizon=30), make_rng(0))
        sim.run_until()
        self.assertLessEqual(sim.now, 30)
        self.assertIsNone(sim.step())
        self.assertFalse(sim.calendar.is_empty())
        self.assertGreater(sim.calendar.peek_time(), 30)

    def test_partial_runs_add_up(self):
        whole = Simulation(HubConfig(horizon=200), make_rng(9))
        whole.run_until()
        split = Simulation(HubConfig(horizon=200), make_rng(9))
        first = split.run_until(80)
        second = split.run_until()
        self.assertLessEqual(split.now, 200)
        self.assertEqual(first + second, whole.calendar.step_count)
        self.assertEqual(split.summary(), whole.summary())

    def test_zero_capacity_buffers_never_evict(self):
        cfg = HubConfig.from_params({
            "horizon": 300,
            "sources": [0.5],
            "perishable": {"buffer_capacity": 0, "devices": 1},
            "regular": {"buffer_capacity": 0, "min_service": 5, "max_service": 10, "devices": 1},
        })
        sim = Simulation(cfg, make_rng(2))
        sim.run_until()
        self.assertEqual(sim.statistics.total_evicted, 0)
        self.assertGreater(sim.statistics.total_rejected, 0)
        self.assertLessEqual(sim.in_flight(), 2)
        kinds = {e.kind for e in sim.calendar.occurred}
        self.assertNotIn(EventKind.BUFFER_ADD, kinds)

    def test_same_seed_same_log(self):
        def log(seed):
            sim = Simulation(busy_config(), make_rng(seed))
            sim.run_until()
            return [(e.time, e.kind, e.note) for e in sim.calendar.occurred]

        self.assertEqual(log(21), log(21))
        self.assertNotEqual(log(21), log(22))

    def test_snapshot(self):
        sim = Simulation(busy_config(), make_rng(4))
        sim.run_until(60)
        snap = sim.snapshot()
        self.assertEqual(snap.now, sim.now)
        self.assertEqual(len(snap.sources), 2)
        self.assertEqual(len(snap.devices), 2)
        self.assertEqual([d.id for d in snap.devices], [1, 2])
        self.assertEqual(snap.stats.arrivals, sim.statistics.total_arrivals)
        regular = snap.buffer("regular")
        self.assertEqual(regular.capacity, 3)
        self.assertEqual(
            len(regular.residents), len(sim.dispatcher.buffer_for(CargoClass.REGULAR))
        )
        times = [e.time for e in snap.pending]
        self.assertEqual(times, sorted(times))

    def test_utilization_counts_busy_time_up_to_horizon(self):
        cfg = HubConfig.from_params({
            "horizon": 100,
            "sources": [0.5],
            "perishable_share": 0.0,
            "perishable": {"devices": 1},
            "regular": {"devices": 1, "min_service": 1000, "max_service": 1000},
        })
        sim = Simulation(cfg, make_rng(0))
        sim.run_until()
        first_start = next(
            e.time for e in sim.calendar.occurred if e.kind is EventKind.SERVICE_START
        )
        summary = sim.summary()
        # Regular device busy from its first start to the horizon, perishable idle
        self.assertAlmostEqual(summary["device_utilization"], (100 - first_start) / 200)

    def test_run_episode_metrics(self):
        m = run_episode({"horizon": 120}, seed=0)
        for key in ("arrivals", "completed", "rejected", "evicted", "in_flight",
                    "rejection_rate", "mean_wait", "device_utilization"):
            self.assertIn(key, m)
        self.assertGreaterEqual(m["device_utilization"], 0.0)
        self.assertLessEqual(m["device_utilization"], 1.0)
        self.assertEqual(m, run_episode({"horizon": 120}, seed=0))


class TestEvaluation(unittest.TestCase):
    """Replications, sweeps, metrics and plots."""

    def test_run_episodes_and_aggregate(self):
        from eval.run_episodes import run_episodes

        mean_m, std_m, all_m = run_episodes({"horizon": 120}, K=3, base_seed=5)
        self.assertEqual(len(all_m), 3)
        self.assertAlmostEqual(mean_m["arrivals"], sum(m["arrivals"] for m in all_m) / 3)
        self.assertIn("rejection_rate", std_m)

    def test_evaluate_config(self):
        from eval.metrics import conservation_gap
        from eval.run_episodes import evaluate_config

        summary = evaluate_config({"horizon": 120}, K=3, base_seed=0)
        self.assertEqual(summary["replications"], 3)
        lo, hi = summary["ci95"]["rejection_rate"]
        self.assertLessEqual(lo, hi)
        self.assertEqual(len(summary["all_metrics"]), 3)
        self.assertTrue(all(conservation_gap(m) == 0 for m in summary["all_metrics"]))

    def test_metrics_helpers(self):
        from eval.metrics import aggregate_metrics, confidence_interval_95, loss_rate

        self.assertEqual(aggregate_metrics([]), ({}, {}))
        means, stds = aggregate_metrics([{"a": 1, "b": "x"}, {"a": 3, "b": "y"}])
        self.assertEqual(means["a"], 2.0)
        self.assertEqual(means["b"], "x")
        self.assertEqual(stds["a"], 1.0)
        self.assertEqual(confidence_interval_95([]), (0.0, 0.0))
        self.assertEqual(confidence_interval_95([2.0]), (2.0, 2.0))
        self.assertEqual(loss_rate({"arrivals": 10, "rejected": 2, "evicted": 1}), 0.3)
        self.assertEqual(loss_rate({}), 0.0)

    def test_shifts_do_not_mutate_input(self):
        from eval.run_episodes import load_config
        from eval.run_sweep import shift_buffers, shift_deadlines, shift_lambda

        params = load_config(None)
        scaled = shift_lambda(params, 1.25)
        self.assertEqual(params["sources"], [0.5, 0.4, 0.5])
        self.assertAlmostEqual(scaled["sources"][0], 0.625)
        halved = shift_buffers(params, 0.5)
        self.assertEqual(halved["perishable"]["buffer_capacity"], 4)
        self.assertEqual(params["perishable"]["buffer_capacity"], 8)
        tight = shift_deadlines(params, 0.5)
        self.assertEqual(tight["regular"]["deadline_minutes"], 10)

    def test_sweep_and_plots(self):
        from eval.plots import plot_sweep_bars, plot_wait_histogram
        from eval.run_episodes import load_config
        from eval.run_sweep import SHIFTS, run_sweep, write_rows

        params = load_config(None)
        params["horizon"] = 60
        rows = run_sweep(params, n_episodes=1, base_seed=0)
        self.assertEqual(len(rows), len(SHIFTS) + 1)
        self.assertEqual(rows[0]["shift"], "baseline")

        with tempfile.TemporaryDirectory() as tmp:
            out_csv = write_rows(rows, Path(tmp) / "sweep_results.csv")
            with open(out_csv) as f:
                self.assertEqual(len(list(csv.DictReader(f))), len(rows))
            png = plot_sweep_bars(out_csv, Path(tmp) / "sweep.png")
            self.assertTrue(Path(png).exists())
            hist = plot_wait_histogram([1.0, 2.5, 4.0], Path(tmp) / "wait.png")
            self.assertTrue(hist.exists())

    def test_replications_script(self):
        from scripts.run_replications import main

        with tempfile.TemporaryDirectory() as tmp:
            cfg = Path(tmp) / "cfg.yaml"
            cfg.write_text("sim:\n  horizon: 90\neval:\n  replications: 2\n  base_seed: 3\n")
            out = Path(tmp) / "out"
            self.assertEqual(main(["--config", str(cfg), "--results_dir", str(out)]), 0)
            with open(out / "replications.csv") as f:
                rows = list(csv.DictReader(f))
            self.assertEqual([r["seed"] for r in rows], ["3", "4"])
            self.assertTrue((out / "summary.json").exists())

    def test_replications_script_rejects_zero(self):
        from scripts.run_replications import main

        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(SystemExit):
                main(["--replications", "0", "--results_dir", tmp])
            self.assertFalse((Path(tmp) / "replications.csv").exists())


if __name__ == "__main__":
    unittest.main(verbosity=2)
