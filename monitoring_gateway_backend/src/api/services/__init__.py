"""Business-logic layer between routers and the upstream clients.

- prometheus_service.py / alertmanager_service.py shape upstream payloads into flat records
- query_pipeline.py filters, sorts, projects and paginates those records per request
"""
