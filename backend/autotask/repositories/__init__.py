"""Repository package: persistence access for the task engine."""
