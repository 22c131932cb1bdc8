"""Orchestration of the chunking run.

Drives the activities for each region:
1. Stream the raw file → extract features
2. Optimize each feature → batch into chunk files
3. Collect per-region summaries into a processing report
"""
