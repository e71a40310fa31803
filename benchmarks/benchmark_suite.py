"""
Benchmark Suite

Performance of the shallow-water pipeline: NumPy reference stages versus
the Numba kernels, and synchronous tick() versus the one-tick-latency
advance() loop.
"""

import time
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbm_swe import SimulationConfig, create_simulator


def benchmark_pipeline(nx, ny, num_steps, warmup_steps=20, use_numba=True,
                       boundary="zou_he", latency=False):
    """
    Time a simulator run.

    Returns
    -------
    mlups : float
        Million Lattice Updates Per Second
    """
    config = SimulationConfig(width=nx, height=ny, boundary=boundary, use_numba=use_numba)

    with create_simulator(config) as sim:
        # Warmup (JIT compilation)
        for _ in range(warmup_steps):
            sim.tick()

        start = time.perf_counter()
        if latency:
            for _ in range(num_steps):
                sim.advance()
            sim.complete_tick()
        else:
            for _ in range(num_steps):
                sim.tick()
        elapsed = time.perf_counter() - start

    return num_steps * nx * ny / elapsed / 1e6


def run_full_benchmark(grid_sizes=None, num_steps=200):
    """Benchmark every variant over several grid sizes."""
    if grid_sizes is None:
        grid_sizes = [
            (65, 193),
            (128, 128),
            (256, 256),
            (512, 512),
        ]

    variants = [
        ("NumPy reference", {"use_numba": False}),
        ("Numba", {"use_numba": True}),
        ("Numba + advance()", {"use_numba": True, "latency": True}),
        ("Numba, periodic", {"use_numba": True, "boundary": "periodic"}),
    ]

    print("=" * 80)
    print("Shallow-Water LBM Benchmark Suite")
    print("=" * 80)
    print(f"Steps: {num_steps}")
    print()

    results = {}
    for name, options in variants:
        print(f"Benchmarking {name}...")
        print("-" * 40)
        steps = num_steps if options.get("use_numba", True) else max(10, num_steps // 10)
        for nx, ny in grid_sizes:
            try:
                mlups = benchmark_pipeline(nx, ny, steps, **options)
                results[(name, nx, ny)] = mlups
                print(f"  {nx:4d} x {ny:4d}: {mlups:8.2f} MLUPS")
            except MemoryError as e:
                print(f"  {nx:4d} x {ny:4d}: Error - {e}")
        print()

    print("Summary")
    print("=" * 80)
    for (name, nx, ny), mlups in results.items():
        print(f"{name:24s} {nx:4d} x {ny:4d}: {mlups:8.2f} MLUPS")

    return results


if __name__ == "__main__":
    run_full_benchmark()
