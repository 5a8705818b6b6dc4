"""Protocol adapters between client wire formats and the execution engine."""
