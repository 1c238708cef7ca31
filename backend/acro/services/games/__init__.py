"""Game domain services: lobby membership, round lifecycle, scoring and the
Delectus orchestrator.

Routes, socket handlers and the orchestrator loop all call into here with
the acting player passed explicitly; nothing in this package reads the
request.
"""
