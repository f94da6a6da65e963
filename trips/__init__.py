"""
Trip and ride analytics package.

This package provides:
- Filter options and record models (models.py)
- Time-range resolution (time_windows.py)
- Query and aggregation construction (query_builder.py)
- Hit projection and aggregation reduction (projector.py, aggregations.py)
- Route geometry validation and generation (polyline_analyzer.py)

Entry points live in services/.
"""
