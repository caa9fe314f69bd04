#!/usr/bin/env python3
"""
Generate all visualization figures for the least-squares descent benchmark.
Run `python -m lsq_descent.benchmark` first to create the CSV inputs.
"""

import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import seaborn as sns
import os

# Set style
plt.style.use('seaborn-v0_8-whitegrid')
sns.set_palette('husl')

# Custom color palette
VARIANT_COLORS = {
    'naive': '#e74c3c',
    'typed': '#f39c12',
    'in_place': '#2ecc71',
    'library': '#3498db',
}

DATA_DIR = 'data'
BENCHMARK_DIR = f'{DATA_DIR}/benchmark'
FIGURES_DIR = f'{DATA_DIR}/figures'
VARIANTS = ['naive', 'typed', 'in_place', 'library']

# Create figures directory
os.makedirs(FIGURES_DIR, exist_ok=True)

print("Loading data...")
results = pd.read_csv(f'{BENCHMARK_DIR}/benchmark.csv')
traces = pd.read_csv(f'{BENCHMARK_DIR}/step_sweep_traces.csv')
sweep = pd.read_csv(f'{BENCHMARK_DIR}/step_sweep_summary.csv')
results = results.set_index('variant').loc[VARIANTS].reset_index()
colors = [VARIANT_COLORS[v] for v in VARIANTS]

print("Generating figures...")

# 1. Runtime per Variant
fig, axes = plt.subplots(1, 2, figsize=(14, 5))
bars = axes[0].bar(VARIANTS, results['min_time_ms'], color=colors, edgecolor='black')
for bar, val in zip(bars, results['min_time_ms']):
    axes[0].text(bar.get_x() + bar.get_width()/2, bar.get_height(), f'{val:.2f}', ha='center', va='bottom', fontsize=10)
axes[0].set_ylabel('Best Time (ms)', fontsize=12)
axes[0].set_title('Runtime per Solve', fontsize=12, fontweight='bold')
axes[0].set_yscale('log')
speedup = results['min_time_ms'].iloc[0] / results['min_time_ms']
bars = axes[1].bar(VARIANTS, speedup, color=colors, edgecolor='black')
for bar, val in zip(bars, speedup):
    axes[1].text(bar.get_x() + bar.get_width()/2, bar.get_height(), f'{val:.0f}x', ha='center', va='bottom', fontsize=10, fontweight='bold')
axes[1].set_ylabel('Speedup vs naive', fontsize=12)
axes[1].set_title('Speedup', fontsize=12, fontweight='bold')
axes[1].set_yscale('log')
plt.tight_layout()
plt.savefig(f'{FIGURES_DIR}/runtime.png', dpi=150, bbox_inches='tight')
plt.close()
print("  ✓ runtime.png")

# 2. Peak Memory per Variant
fig, ax = plt.subplots(figsize=(8, 5))
ax.bar(VARIANTS, results['peak_memory_kib'], color=colors, edgecolor='black')
ax.set_ylabel('Peak Traced Memory (KiB)', fontsize=12)
ax.set_title('Memory per Solve', fontsize=12, fontweight='bold')
plt.tight_layout()
plt.savefig(f'{FIGURES_DIR}/memory.png', dpi=150, bbox_inches='tight')
plt.close()
print("  ✓ memory.png")

# 3. Objective vs Iteration for each Step Size
fig, ax = plt.subplots(figsize=(10, 6))
for fraction, group in traces.groupby('step_fraction'):
    ax.semilogy(group['iteration'], group['objective'], linewidth=2, marker='o', markersize=3,
                label=f'step = {fraction:.2f} x 2/L')
ax.set_xlabel('Iteration', fontsize=12)
ax.set_ylabel('f(x) = ||Ax - b||²', fontsize=12)
ax.set_title('Fixed-Step Descent: Objective vs Iteration', fontsize=14, fontweight='bold')
ax.legend(loc='upper right')
plt.tight_layout()
plt.savefig(f'{FIGURES_DIR}/step_sweep.png', dpi=150, bbox_inches='tight')
plt.close()
print("  ✓ step_sweep.png")

# 4. Optimality Gap vs Step Fraction
fig, ax = plt.subplots(figsize=(8, 5))
stable = sweep[~sweep['diverged']]
unstable = sweep[sweep['diverged']]
ax.semilogy(stable['step_fraction'], stable['optimality_gap'].abs(), 'o-', color='#2ecc71', label='Converging')
if len(unstable):
    ax.semilogy(unstable['step_fraction'], unstable['optimality_gap'].abs(), 'x', color='#e74c3c', markersize=12, label='Diverged')
ax.axvline(1.0, color='gray', linestyle='--', label='2/L')
ax.set_xlabel('Step (fraction of 2/L)', fontsize=12)
ax.set_ylabel('|f(x) - f(x*)|', fontsize=12)
ax.set_title('Optimality Gap after Fixed Budget', fontsize=12, fontweight='bold')
ax.legend()
plt.tight_layout()
plt.savefig(f'{FIGURES_DIR}/optimality_gap.png', dpi=150, bbox_inches='tight')
plt.close()
print("  ✓ optimality_gap.png")

print("\n" + "="*60)
print("ALL FIGURES GENERATED SUCCESSFULLY!")
print("="*60)
print(f"\nFigures saved to: {FIGURES_DIR}/")
