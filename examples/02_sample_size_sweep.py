"""
Sample Size Calculation Example
===============================

Sweep a range of sample sizes and report the first one reaching the
target power.
"""

from simpower import PowerAnalysis, TwoGroupParameters, TwoGroupTrial

print("=" * 60)
print("SAMPLE SIZE CALCULATION EXAMPLE")
print("=" * 60)

params = TwoGroupParameters(mean_control=17, mean_treatment=23, variance=117)

analysis = (
    PowerAnalysis(TwoGroupTrial(params, method="ttest"))
    .set_alpha(0.005)
    .set_power(0.8)
    .set_iterations(1000)
    .set_seed(2137)
)

# 1. Basic sweep
print("\n1. SWEEP 100-300 BY 20:")
table = analysis.find_sample_size(from_size=100, to_size=300, by=20, return_results=True)

# 2. Same sweep in parallel gives the same numbers for the same seed
print("\n2. PARALLEL SWEEP (same seed, same numbers):")
analysis.set_parallel(True, n_cores=2)
parallel_table = analysis.find_sample_size(from_size=100, to_size=300, by=20, return_results=True)
print(f"Identical to sequential run: {table.powers() == parallel_table.powers()}")

# 3. Higher target
print("\n3. HIGH POWER REQUIREMENT (90% power):")
analysis.set_power(0.9).find_sample_size(from_size=150, to_size=350, by=25)
