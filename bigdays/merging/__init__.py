"""
Covariate merging for big-day analysis.

Hands outbreak geometry to environmental samplers and joins the covariates
they return back onto the big-day table.
"""

from .covariate_merger import covariate_sampling_frame, merge_covariates

__all__ = ["covariate_sampling_frame", "merge_covariates"]
