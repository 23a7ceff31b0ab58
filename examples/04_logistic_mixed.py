"""
Logistic and Mixed Model Example
================================

Power for a binary outcome (logistic regression) and for clustered data
(random-intercept model), plus a precision target for a correlation.
"""

from simpower import (
    LinearRegressionTrial,
    LogisticTrial,
    MixedModelParameters,
    MixedModelTrial,
    PowerAnalysis,
    PrecisionParameters,
    PrecisionTrial,
    RegressionParameters,
    WidthBelow,
)

print("=" * 60)
print("LOGISTIC REGRESSION")
print("=" * 60)

# Log-odds scale: baseline probability about 0.27, odds ratio about 1.8
logit = RegressionParameters(coefficients={"treatment": 0.6}, intercept=-1.0, groups={"treatment": 0.5})
PowerAnalysis(LogisticTrial(logit)).set_iterations(500).find_sample_size(from_size=100, to_size=500, by=50)

print("\n" + "=" * 60)
print("RANDOM-INTERCEPT MODEL (ICC = 0.2, 10 per cluster)")
print("=" * 60)

fixed = RegressionParameters(coefficients={"x1": 0.25}, means={"x1": 0.0}, residual_variance=0.8)
clustered = MixedModelParameters(fixed=fixed, cluster_size=10, intercept_variance=0.2)
print(f"ICC: {clustered.icc:.2f}")

# Mixed models are slow; few iterations and a time budget per sample size
(
    PowerAnalysis(MixedModelTrial(clustered))
    .set_iterations(100)
    .set_time_budget(120)
    .set_parallel(True)
    .find_sample_size(from_size=100, to_size=300, by=50)
)

print("\n" + "=" * 60)
print("PRECISION: CORRELATION INTERVAL NARROWER THAN 0.20")
print("=" * 60)

(
    PowerAnalysis(PrecisionTrial(PrecisionParameters(correlation=0.3)))
    .set_criterion(WidthBelow(0.20))
    .set_iterations(500)
    .find_sample_size(from_size=300, to_size=450, by=25)
)

print("\nCI width of a regression slope instead of its p-value:")
ci_trial = LinearRegressionTrial(fixed, statistic="ci_width")
PowerAnalysis(ci_trial).set_criterion(WidthBelow(0.25)).set_iterations(500).find_power(300)
