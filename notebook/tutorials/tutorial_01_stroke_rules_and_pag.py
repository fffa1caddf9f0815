# ---
# jupyter:
#   jupytext:
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
#       jupytext_version: 1.15.0
#   kernelspec:
#     display_name: Python 3
#     language: python
#     name: python3
# ---

# %% [markdown]
# # Stroke Incidence: Rule Lists and Causal Structure
#
# We bucket the continuous biometrics, resolve missing smoking status, rebalance the rare
# stroke class, fit an interpretable rule list and finally look for causal structure with FCI.
#
# - **Source**: [Stroke Prediction Dataset](https://github.com/Harshita-Kanal/Stroke-Prediction-Dataset/blob/master/healthcare-dataset-stroke-data.csv)
# - **Task**: Predict stroke occurrence (`stroke`)
# - **Features**: Age, hypertension, cardiovascular history, lifestyle, glucose, BMI

# %% [markdown]
# ## Setup

# %%
import logging

import polars as pl
from strokelab import (
    CausalStructureLearner,
    MinorityOversampler,
    RuleListClassifier,
    StrokeDiscretizer,
    StrokeImputer,
    bucket_counts,
    evaluate_scores,
    load_stroke_csv,
    missing_percentages,
    write_sbrl_inputs,
)
from strokelab.config import DEFAULT_FEATURES
from strokelab.pipeline import split_train_test

logging.basicConfig(level=logging.INFO)
pl.Config.set_tbl_rows(12)

# %% [markdown]
# ## Load the dataset
#
# `N/A` BMI and `Unknown` smoking status come in as nulls; the 0/1 flags become categorical.

# %%
SOURCE_URL = "https://raw.githubusercontent.com/Harshita-Kanal/Stroke-Prediction-Dataset/master/healthcare-dataset-stroke-data.csv"
raw_df = load_stroke_csv(SOURCE_URL)
missing_percentages(raw_df)

# %% [markdown]
# ## Discretize age, BMI and glucose
#
# Age and BMI use fixed clinical cut points. Glucose is bimodal, so a two-component mixture
# splits it first and quartiles are taken within each component.

# %%
discretizer = StrokeDiscretizer(random_state=42)
binned = discretizer.fit_transform(raw_df)
discretizer.glucose_.cut_points_

# %%
bucket_counts(binned, "glucose_bucket", target="stroke")

# %% [markdown]
# ## Impute smoking status and drop missing BMI
#
# Children with no recorded status are taken as never having smoked; everyone else gets
# `unknown`. Records without a BMI bucket are excluded.

# %%
imputer = StrokeImputer()
cleaned = imputer.fit_transform(binned)
imputer.n_dropped_, cleaned.height

# %% [markdown]
# ## Rebalance and fit the rule list

# %%
train, test = split_train_test(cleaned, "stroke", test_size=0.3, seed=42)
balanced = MinorityOversampler(features=DEFAULT_FEATURES, random_state=42).fit_resample(train)
write_sbrl_inputs(balanced, DEFAULT_FEATURES, "stroke", "sbrl.out", "sbrl.label")

model = RuleListClassifier(features=DEFAULT_FEATURES, max_iter=20000).fit(balanced)
print(model.rules())

# %%
evaluation = evaluate_scores(model.labels(test), model.predict_proba(test))
evaluation.to_dict()

# %% [markdown]
# ## Causal structure
#
# Demographics come first and stroke comes last; FCI fills in the rest, marking edges it cannot
# orient with circles.

# %%
learner = CausalStructureLearner(
    columns=[*DEFAULT_FEATURES, "stroke"],
    tiers=[["gender", "age_bucket"], ["stroke"]],
)
pag = learner.fit(cleaned)
pag.to_frame()

# %% [markdown]
# `pag.to_dot()` renders with Graphviz. `python -m strokelab data.csv` runs all of the above and
# writes a Markdown report.
