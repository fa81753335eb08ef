#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Create the indexes of the MongoDB report store and list what each collection ends up with.

Reads MONGODB_URI and MONGODB_DATABASE the same way the API does.
"""

import sys
import os
import logging

# Add the parent directory to the path so we can import from api
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import load_config
from services.mongodb import MongoDBService, ACTORS, REPORTS

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def describe_indexes(mongodb_service: MongoDBService) -> dict:
    """Index names per workflow collection."""
    return {
        name: sorted(mongodb_service.get_collection(name).index_information())
        for name in (ACTORS, REPORTS)
    }


def main():
    config = load_config()
    mongodb_service = MongoDBService(config['MONGODB_URI'], config['MONGODB_DATABASE'])
    try:
        health = mongodb_service.health_check()
        if health['status'] != 'healthy':
            logger.error(f"Report store is not reachable: {health}")
            sys.exit(1)

        logger.info(f"Creating report store indexes on {health['database']} (MongoDB {health['version']})")
        mongodb_service.create_indexes()

        for collection, indexes in describe_indexes(mongodb_service).items():
            logger.info(f"{collection}: {', '.join(indexes)}")

    except Exception as e:
        logger.error(f"Failed to create indexes: {e}")
        sys.exit(1)
    finally:
        mongodb_service.close_connection()


if __name__ == "__main__":
    main()
