"""Path and naming helpers shared by the writer, index builder and query engine."""
