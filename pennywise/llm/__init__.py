"""Language-model helpers."""
