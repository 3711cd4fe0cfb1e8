"""Infrastructure: driver adapters, settings, logging and probes."""
