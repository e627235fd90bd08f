"""Host adapters for the hex engine."""
