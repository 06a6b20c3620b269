"""Seller survey application for the Commercial Survey project.

This package contains the models, services, views, forms and templates that
power the seller maturity survey (the "Unlock Index"), the free-form business
assessment and the platform dashboard used by staff to review sellers.  The
business rules live in ``survey.services`` so that views stay thin and the
rules can be exercised directly from tests and management commands.
"""
