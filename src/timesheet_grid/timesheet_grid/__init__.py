"""Timesheet Grid package.

Validation, duplicate detection and merge-persistence for store/period
attendance grids, organized by feature modules (catalog, validation,
duplicates, persistence, ...) with a thin Flask controller layer on top of
async service/repository layers.
"""
