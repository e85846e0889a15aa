# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Test Suite for the Component Registry Backend

Structure:
- unit/: Unit tests for the resolution pipeline and services
- test_api.py: API tests for the registry endpoints
"""
