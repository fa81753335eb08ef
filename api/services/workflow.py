# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Boundary wrapper applied to every workflow operation.

Operations raise domain errors freely; the wrapper traces the call and turns
the outcome into a WorkflowResult. Anything that is not a domain error is an
infrastructure failure: it is logged with its traceback and reported with a
generic message.
"""

import logging
from functools import wraps
from opentelemetry import trace

from domain.errors import DomainError, InternalError
from domain.results import WorkflowResult

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

GENERIC_FAILURE_MESSAGE = "An unexpected error occurred. Please try again later."


def workflow_operation(name: str):
    """
    Decorate a service method so it returns a WorkflowResult.

    Args:
        name: Operation name used for the span and log records
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            with tracer.start_as_current_span(f"workflow.{name}") as span:
                span.set_attribute("workflow.operation", name)
                try:
                    value = func(*args, **kwargs)
                    span.set_attribute("workflow.success", True)
                    return WorkflowResult.ok(value)

                except DomainError as e:
                    span.set_attributes({
                        "workflow.success": False,
                        "workflow.error_type": e.error_type
                    })
                    logger.info(
                        f"Workflow operation {name} refused: {e.message}",
                        extra={
                            "operation": name,
                            "error_type": e.error_type,
                            "status_code": e.status_code
                        }
                    )
                    return WorkflowResult.fail(e)

                except Exception as e:
                    span.record_exception(e)
                    span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                    logger.error(
                        f"Workflow operation {name} failed",
                        extra={
                            "operation": name,
                            "error": str(e),
                            "error_class": type(e).__name__
                        },
                        exc_info=True
                    )
                    return WorkflowResult.fail(InternalError(GENERIC_FAILURE_MESSAGE))
        return wrapper
    return decorator
