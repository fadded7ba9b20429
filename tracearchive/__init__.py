"""Trace archive builder: link raw execution traces into annotated archive trees."""
