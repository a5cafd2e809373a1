"""Feature apps: directory, inventory, withdrawals and audit."""
