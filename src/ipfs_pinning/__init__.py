"""IPFS pinning service.

Consumes pinning jobs from a durable queue, commits release media, thumbnails
and organization logos to the configured content-addressable storage provider,
and keeps the indexer's pin records in sync with the outcome.
"""
