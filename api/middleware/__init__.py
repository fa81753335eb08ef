# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package contains the bearer token authentication decorator and the
error handler that renders workflow errors as problem documents.
"""
