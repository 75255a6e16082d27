# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package contains middleware components for session authentication,
error handling, and request/response processing in the Tawzi3 portal.
"""
