"""spotify_viz package initializer.

This package contains the data pipeline modules behind the Shiny
dashboard.  Modules include dataset loading, row normalization, filter
handling, aggregation and plotting helpers.  See individual module
docstrings for details.
"""
