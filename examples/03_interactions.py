"""
Interaction Effects Example
===========================

Power for the main effects and the interaction of a continuous predictor
with a randomized binary treatment in a linear regression.
"""

from simpower import LinearRegressionTrial, PowerAnalysis, RegressionParameters

print("=" * 60)
print("INTERACTION EFFECTS EXAMPLE")
print("=" * 60)

params = RegressionParameters(
    coefficients={"motivation": 0.3, "treatment": 0.4, "motivation:treatment": 0.25},
    means={"motivation": 0.0},
    groups={"treatment": 0.5},
    residual_variance=1.0,
)

trial = LinearRegressionTrial(params)
analysis = PowerAnalysis(trial).set_iterations(800).set_parallel(True)

# Interactions need far larger samples than main effects
analysis.find_sample_size(from_size=100, to_size=600, by=50)

# Power for the interaction only
print("\nINTERACTION ONLY:")
PowerAnalysis(LinearRegressionTrial(params, tests=["motivation:treatment"])).set_iterations(800).find_power(400)
