"""Upstream data sources. Each subpackage owns one provider."""
