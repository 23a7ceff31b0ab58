"""
Monte Carlo Error Example
=========================

How much does a power estimate move between runs with different seeds,
and how many iterations are needed for a given precision?
"""

from simpower import PowerAnalysis, TwoGroupParameters, TwoGroupTrial, required_iterations

print("=" * 60)
print("MONTE CARLO ERROR EXAMPLE")
print("=" * 60)

# d = 0.28 at N = 100 with alpha = 0.005: power is low, so its estimate is precise
params = TwoGroupParameters(mean_control=0.0, mean_treatment=0.28, variance=1.0)
analysis = PowerAnalysis(TwoGroupTrial(params, method="ttest")).set_alpha(0.005).set_parallel(True)

frame = analysis.monte_carlo_error(sample_size=100, iterations=(1000, 3000), repetitions=30, return_results=True)

print("\nIterations needed for a Monte Carlo error of 0.01:")
for power in (0.1, 0.5, 0.8):
    print(f"  power {power:.0%}: {required_iterations(power, 0.01)} iterations")
