"""
Tax engine for equity compensation under Israeli rules.

* ``brackets`` – bracket tables and progressive income tax.
* ``social_contribution`` – National Insurance and Health Tax on monthly income.
* ``surtax`` – high-income surtax split between labor and passive income.
* ``eligibility`` – Section 102 holding-period state.
* ``tax_calculator`` – per-instrument tax engine and the public functions.
* ``calculator`` – vesting, portfolio totals and leave-date scenarios.
"""
