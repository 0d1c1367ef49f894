"""Pydantic schemas for request/response validation.

Sub-modules:
    common    — shared before-validators (blank → None, deliverable splitting)
    specialty — SpecialtyCreate/Read, SpecialtySummary
    project   — ProjectCreate/Update/Read/Summary/DetailRead and child schemas
    slots     — ApplicationCreate/Read, AssignmentCreate/Read, AuditEventRead
"""

from __future__ import annotations
