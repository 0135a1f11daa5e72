"""Workflow graph model, name resolution and graph composition."""
