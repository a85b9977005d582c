"""Core orchestration.

This module contains the per-file transcode orchestrator and the batch
driver that walks the list of input files.
"""
