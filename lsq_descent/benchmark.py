#!/usr/bin/env python3
"""
Benchmark Harness for Least-Squares Descent Variants
====================================================

Times every implementation of the same fixed-step descent on the same
problem and reports how far each one is from the naive version.

Variants:
    1. naive     - slice-then-reduce, untyped transpose per call
    2. typed     - explicit loops, typed buffers, still allocating per step
    3. in_place  - compiled kernels, buffers set up once (the core solver)
    4. library   - numpy.matmul into buffers + BLAS daxpy

Metrics Computed:
    1. Wall-clock Runtime: best / median / mean over repeats
    2. Peak traced memory of one full solve (tracemalloc)
    3. Numba runtime allocation count of the in-place hot loop alone
    4. Final objective and deviation from the in-place iterate

Run with `python -m lsq_descent.benchmark`.
"""

import os
import time
import tracemalloc
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from numba.core.runtime import _nrt_python as _nrt
from numba.core.runtime import rtsys

from .base import make_problem
from .baselines import descent_naive, descent_typed
from .diagnostics import diagnose, max_stable_step
from .gradient_descent import solve
from .kernels import descent_loop, objective, transpose
from .library_descent import solve_library

# =============================================================================
# CONFIGURATION
# =============================================================================

PROBLEM_SHAPE = (10, 20)
ITERATIONS = 1000
STEP = 1e-3
REPEATS = 5
SEED = 0

# Step sizes for the sweep, as fractions of the 2/L stability limit
STEP_FRACTIONS = (0.25, 0.5, 0.9, 1.05)
SWEEP_CHECKPOINTS = 50

DATA_DIR = 'data'
OUTPUT_DIR = os.path.join(DATA_DIR, 'benchmark')

VARIANTS: Dict[str, Callable] = {
    'naive': descent_naive,
    'typed': descent_typed,
    'in_place': solve,
    'library': solve_library,
}

BASELINE = 'naive'


# =============================================================================
# MEASUREMENT
# =============================================================================

def time_variant(fn: Callable,
                 x0: np.ndarray,
                 A: np.ndarray,
                 b: np.ndarray,
                 iterations: int = ITERATIONS,
                 step: float = STEP,
                 repeats: int = REPEATS) -> List[float]:
    """
    Wall-clock times (seconds) of `repeats` calls, after one warm-up call.
    
    The warm-up keeps JIT compilation out of the measurements.
    """
    fn(x0, A, b, iterations=min(iterations, 1), step=step)
    times = []
    for _ in range(repeats):
        start_time = time.perf_counter()
        fn(x0, A, b, iterations=iterations, step=step)
        times.append(time.perf_counter() - start_time)
    return times


def measure_allocations(fn: Callable, *args, **kwargs) -> Tuple[int, object]:
    """
    Peak traced memory (bytes) while calling fn(*args, **kwargs).
    
    Tracing already switched on by the caller is left running.
    
    Returns
    -------
    tuple
        (peak_bytes, return value of fn)
    """
    started = not tracemalloc.is_tracing()
    if started:
        tracemalloc.start()
    try:
        tracemalloc.reset_peak()
        baseline, _ = tracemalloc.get_traced_memory()
        result = fn(*args, **kwargs)
        _, peak = tracemalloc.get_traced_memory()
    finally:
        if started:
            tracemalloc.stop()
    return peak - baseline, result


def count_nrt_allocations(fn: Callable, *args, **kwargs) -> Tuple[int, object]:
    """
    Number of numba runtime allocations made while calling fn(*args, **kwargs).
    
    Counts every array allocated by compiled code, including buffers
    freed again before the call returns.
    
    Returns
    -------
    tuple
        (allocation_count, return value of fn)
    """
    enabled = _nrt.memsys_stats_enabled()
    if not enabled:
        _nrt.memsys_enable_stats()
    try:
        before = rtsys.get_allocation_stats().alloc
        result = fn(*args, **kwargs)
        after = rtsys.get_allocation_stats().alloc
    finally:
        if not enabled:
            _nrt.memsys_disable_stats()
    return after - before, result


def hot_loop_allocations(A: np.ndarray,
                         b: np.ndarray,
                         x0: np.ndarray,
                         iterations: int = ITERATIONS,
                         step: float = STEP) -> int:
    """
    Numba runtime allocations made by the in-place iteration loop only.
    
    Buffers and the transpose are set up, and the kernel compiled,
    before counting starts; only `descent_loop` is measured. The count
    covers the argument wrappers of one call and must not grow with
    `iterations`.
    """
    m, n = A.shape
    x = np.array(x0, dtype=np.float64)
    grad = np.empty(n)
    residual = np.empty(m)
    At = transpose(A)
    descent_loop(x.copy(), grad, residual, A, b, At, 1, step)
    
    count, _ = count_nrt_allocations(descent_loop, x, grad, residual, A, b, At, iterations, step)
    return count


def objective_trace(A: np.ndarray,
                    b: np.ndarray,
                    x0: np.ndarray,
                    step: float,
                    iterations: int = ITERATIONS,
                    checkpoints: int = SWEEP_CHECKPOINTS) -> pd.DataFrame:
    """
    Objective value every iterations/checkpoints steps of one descent run.
    """
    m, n = A.shape
    x = np.array(x0, dtype=np.float64)
    grad = np.empty(n)
    residual = np.empty(m)
    At = transpose(A)
    
    stride = max(iterations // checkpoints, 1)
    records = [{'iteration': 0, 'objective': objective(x, A, b)}]
    done = 0
    with np.errstate(over='ignore', invalid='ignore'):
        while done < iterations:
            chunk = min(stride, iterations - done)
            descent_loop(x, grad, residual, A, b, At, chunk, step)
            done += chunk
            records.append({'iteration': done, 'objective': objective(x, A, b)})
    
    df = pd.DataFrame(records)
    df['step'] = step
    return df


# =============================================================================
# BENCHMARK RUNNER
# =============================================================================

def run_benchmark(shape: Tuple[int, int] = PROBLEM_SHAPE,
                  iterations: int = ITERATIONS,
                  step: float = STEP,
                  repeats: int = REPEATS,
                  seed: Optional[int] = SEED,
                  variants: Optional[Dict[str, Callable]] = None,
                  verbose: bool = False) -> pd.DataFrame:
    """Run all variants on one problem and collect timings and memory."""
    variants = VARIANTS if variants is None else variants
    A, b, x0 = make_problem(*shape, seed=seed)
    
    x_core = solve(x0, A, b, iterations=iterations, step=step)
    
    rows = []
    for name, fn in variants.items():
        if verbose:
            print(f"  Benchmarking {name}...")
        times = np.array(time_variant(fn, x0, A, b, iterations, step, repeats))
        peak, x = measure_allocations(fn, x0, A, b, iterations=iterations, step=step)
        rows.append({
            'variant': name,
            'm': shape[0],
            'n': shape[1],
            'iterations': iterations,
            'step': step,
            'min_time_ms': times.min() * 1000,
            'median_time_ms': np.median(times) * 1000,
            'mean_time_ms': times.mean() * 1000,
            'peak_memory_kib': peak / 1024,
            'final_objective': objective(x, A, b),
            'max_abs_diff_vs_in_place': float(np.max(np.abs(x - x_core))),
        })
    
    return pd.DataFrame(rows)


def compute_speedups(df: pd.DataFrame, baseline: str = BASELINE) -> pd.DataFrame:
    """Add speedup and memory-reduction ratios relative to `baseline`."""
    df = df.copy()
    ref = df.loc[df['variant'] == baseline].iloc[0]
    df['speedup'] = ref['min_time_ms'] / df['min_time_ms']
    df['memory_reduction'] = ref['peak_memory_kib'] / df['peak_memory_kib'].where(
        df['peak_memory_kib'] > 0)
    return df


def run_step_sweep(shape: Tuple[int, int] = PROBLEM_SHAPE,
                   iterations: int = ITERATIONS,
                   fractions: Sequence[float] = STEP_FRACTIONS,
                   seed: Optional[int] = SEED) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Objective traces for steps at fixed fractions of the stability limit.
    
    Returns
    -------
    tuple
        (traces, diagnostics) DataFrames
    """
    A, b, x0 = make_problem(*shape, seed=seed)
    limit = max_stable_step(A)
    
    traces = []
    summaries = []
    for fraction in fractions:
        step = fraction * limit
        trace = objective_trace(A, b, x0, step, iterations)
        trace['step_fraction'] = fraction
        traces.append(trace)
        
        with np.errstate(over='ignore', invalid='ignore'):
            x = solve(x0, A, b, iterations=iterations, step=step)
        record = diagnose(x, x0, A, b, iterations, step).to_dict()
        record['step_fraction'] = fraction
        summaries.append(record)
    
    return pd.concat(traces, ignore_index=True), pd.DataFrame(summaries)


# =============================================================================
# REPORTING
# =============================================================================

def save_results(results: pd.DataFrame,
                 traces: pd.DataFrame,
                 sweep: pd.DataFrame,
                 output_dir: str = OUTPUT_DIR):
    """Write benchmark tables as CSV."""
    os.makedirs(output_dir, exist_ok=True)
    results.to_csv(os.path.join(output_dir, 'benchmark.csv'), index=False)
    traces.to_csv(os.path.join(output_dir, 'step_sweep_traces.csv'), index=False)
    sweep.to_csv(os.path.join(output_dir, 'step_sweep_summary.csv'), index=False)


def print_benchmark_report(results: pd.DataFrame,
                           sweep: pd.DataFrame,
                           hot_loop_allocs: int):
    """Print formatted benchmark report."""
    
    print("\n" + "="*80)
    print("LEAST-SQUARES DESCENT BENCHMARK")
    print("="*80)
    
    row = results.iloc[0]
    print(f"Problem: A is {row['m']} x {row['n']}, "
          f"{row['iterations']} iterations, step = {row['step']:.1e}")
    
    print("\n" + "-"*80)
    print("RUNTIME AND MEMORY")
    print("-"*80)
    columns = ['variant', 'min_time_ms', 'median_time_ms', 'peak_memory_kib',
               'speedup', 'memory_reduction']
    print(results[columns].to_string(index=False, float_format='%.3f'))
    
    print("\n" + "-"*80)
    print("AGREEMENT WITH IN-PLACE ITERATE")
    print("-"*80)
    df = results[['variant', 'final_objective', 'max_abs_diff_vs_in_place']].copy()
    df['max_abs_diff_vs_in_place'] = df['max_abs_diff_vs_in_place'].apply(lambda x: f'{x:.2e}')
    print(df.to_string(index=False))
    
    print("\n" + "-"*80)
    print("HOT LOOP ALLOCATIONS")
    print("-"*80)
    print(f"Numba runtime allocations inside descent_loop: {hot_loop_allocs}")
    
    print("\n" + "-"*80)
    print("STEP-SIZE SWEEP (fractions of 2/L)")
    print("-"*80)
    df = sweep[['step_fraction', 'step', 'final_objective', 'optimality_gap', 'diverged']].copy()
    for col in ['step', 'final_objective', 'optimality_gap']:
        df[col] = df[col].apply(lambda x: f'{x:.3e}' if pd.notna(x) else 'N/A')
    print(df.to_string(index=False))


def main():
    """Main execution function."""
    
    results = compute_speedups(run_benchmark(verbose=True))
    traces, sweep = run_step_sweep()
    
    A, b, x0 = make_problem(*PROBLEM_SHAPE, seed=SEED)
    hot_loop_allocs = hot_loop_allocations(A, b, x0)
    
    save_results(results, traces, sweep)
    print_benchmark_report(results, sweep, hot_loop_allocs)
    
    print("\n" + "="*80)
    print(f"Benchmark saved to: {OUTPUT_DIR}")
    print("="*80)
    
    return results, sweep


if __name__ == '__main__':
    results, sweep = main()
