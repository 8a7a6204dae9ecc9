"""
Tula Turismo application.

A FastAPI-powered explorer for the artisans and places of Tula de Allende,
with a super-admin surface for managing the place catalog on the map.

Date: 2026-10-18
"""
