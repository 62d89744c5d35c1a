"""Repeated scheduling experiments.

Runs every configured algorithm over freshly generated workloads, persists
run-level JSON results and summarizes them per algorithm.
"""
