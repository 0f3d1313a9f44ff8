"""Calendar date helpers."""
