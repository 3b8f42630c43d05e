"""Historical chain state queries: migration boundaries and storage snapshots."""
