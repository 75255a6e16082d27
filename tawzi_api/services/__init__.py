# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - External integrations and side effects.
"""

from .mongodb import MongoDBService, RecordStoreError, get_mongodb_service, close_mongodb_connection
from .resolver import DistributionResolver, DataInconsistencyError, ParcelResolutionError

__all__ = [
    "MongoDBService",
    "RecordStoreError",
    "get_mongodb_service",
    "close_mongodb_connection",
    "DistributionResolver",
    "DataInconsistencyError",
    "ParcelResolutionError"
]
