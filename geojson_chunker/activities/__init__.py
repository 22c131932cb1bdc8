"""Pipeline activities.

Each module is one unit of work:
- extract_features: Streaming delimiting of Feature objects
- optimize_feature: Coordinate rounding and property reduction
- write_chunks: Batching features into chunk files
- compute_bounds: Bounding box of a geometry
- build_index: Spatial index over a region's chunks
- query_tiles: Bounding-box and zoom queries
- inspect_region: Read-only profile of a raw region file
"""
