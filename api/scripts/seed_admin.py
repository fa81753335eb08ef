#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Script to create an administrator account.

Administrators cannot register through the API. Credentials are read from
ADMIN_EMAIL, ADMIN_PASSWORD and ADMIN_NAME.
"""

import sys
import os
import logging

# Add the parent directory to the path so we can import from api
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.mongodb import MongoDBService
from services.auth import AuthService
from services.accounts import AccountService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    """Create the administrator described by the environment."""
    email = os.getenv('ADMIN_EMAIL')
    password = os.getenv('ADMIN_PASSWORD')
    full_name = os.getenv('ADMIN_NAME', 'Administrator')

    if not email or not password:
        logger.error("ADMIN_EMAIL and ADMIN_PASSWORD must be set")
        sys.exit(1)

    mongodb_service = MongoDBService()
    try:
        accounts = AccountService(mongodb_service, AuthService())
        result = accounts.create_administrator(email, password, full_name)
        if not result.success:
            logger.error(f"Administrator not created: {result.error_message}")
            sys.exit(1)

        logger.info(f"Administrator {result.value.email} created with id {result.value.id}")
    finally:
        mongodb_service.close_connection()


if __name__ == "__main__":
    main()
