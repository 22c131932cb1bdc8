"""GeoJSON Region Chunker.

Streams multi-gigabyte GeoJSON FeatureCollection files region by region,
reduces each feature to a compact representation, writes bounded-size
chunk files, and serves bounding-box queries over those chunks through
an in-memory spatial index.
"""

__version__ = "0.1.0"
