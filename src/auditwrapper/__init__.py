"""npm audit wrapper: policy-filtered dependency audits with a readable report."""

__version__ = "0.1.0"
