"""
Platform back office: schools, plans, subscription payments, CRM and platform settings.
"""
