"""Provider clients, storage and export services."""
