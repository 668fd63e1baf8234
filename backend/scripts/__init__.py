"""
Backend Scripts Module

Command-line entry points for the VAT automation jobs and local setup.

Available scripts:
    - vat_quarter_automation.py: Daily transition run (--auto-assign)
    - auto_create_vat_quarters.py: Monthly quarter creation (--simulated-date, --skip-emails)
    - seed_data.py: Creates sample partners and VAT clients

Usage:
    python -m scripts.vat_quarter_automation --auto-assign
"""
