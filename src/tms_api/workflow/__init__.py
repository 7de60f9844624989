"""
Transport Requisition Workflow Module

This module provides the request lifecycle and its supporting services:
- Status enum and role-gated transition table
- Lifecycle manager applying transitions atomically over PostgreSQL
- Role-specific inbox, history, dashboard and report views
- User identity and fleet (driver/vehicle) management
"""

__version__ = "1.0.0"
