"""Collaborators surrounding the view engine."""

from .fetch import DatasetClient, FetchResult, fetch_dataset

__all__ = ["DatasetClient", "FetchResult", "fetch_dataset"]
