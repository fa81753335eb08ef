# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the Report Abandono platform.

This package contains pure business logic functions with no side effects:
the report state machine, account workflows, authorization gates and the
error taxonomy shared by every layer.
"""
