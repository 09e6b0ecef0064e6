"""Asset services: listings, virtual filesystem, reverse proxy."""
