"""
Clinic Scheduling Service

A FastAPI backend where patients, doctors and admins authenticate, manage
profiles, and book appointments against doctors' weekly availability.
"""

__version__ = "1.0.0"
