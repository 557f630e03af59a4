"""Background backup: cadence policy, retry runner, and host scheduling."""
