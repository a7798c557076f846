"""Media resolution for upload commands."""

from .fetcher import MediaFetcher, MediaFile
