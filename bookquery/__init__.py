"""
Query-and-reporting tool for a MongoDB book collection.

Runs a fixed, reconfigurable catalog of queries, aggregation reports and
index commands against one collection and renders each result.
"""

__version__ = "0.1.0"
__author__ = "Parthiv Naresh"
__email__ = "parthivnaresh@gmail.com"
