"""
API route modules for the quality management system.

This package contains subrouters for:
- Auth, Users, Organization: sign-in, user approval, roles, departments and locations
- Safety, Documents, Training: reporting, document control and training plans
- Master Data, Quality, NCR, Complaints: job tickets through nonconformance and complaints
- Backup, Reports: data export/restore and KPI reporting

Routers are included from qms.api.main (under the /api/v1 prefix).
"""
