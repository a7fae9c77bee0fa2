"""Interface adapters exposed to external clients."""
