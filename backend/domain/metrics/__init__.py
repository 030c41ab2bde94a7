"""Metrics domain module: aggregate counters kept on student and vendor documents."""
