"""
LaborCompare data pipeline.

Ingests BLS, Census ACS and BEA statistics, reconciles their geographic
identifiers and publishes read-optimized JSON index files.
"""

__version__ = "0.4.0"
