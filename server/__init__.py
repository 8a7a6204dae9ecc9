"""
Server modules for the Tula Turismo application.

This package contains the FastAPI routers, the REST gateway client, the map
engine that streams commands to the browser, and the view controllers.

Date: 2026-10-18
"""
