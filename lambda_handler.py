"""
AWS Lambda handler for the Contact Reconciliation Service
This module adapts the FastAPI application to work with AWS Lambda + API Gateway
"""

import json
import logging
from typing import Any, Dict, Tuple

from mangum import Mangum

from main import app

# Configure logging for Lambda
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Configure Mangum adapter for Lambda
handler = Mangum(
    app,
    lifespan="off",  # Disable lifespan events for Lambda
    api_gateway_base_path="/",
    text_mime_types=[
        "application/json",
        "application/javascript",
        "application/xml",
        "application/vnd.api+json",
        "text/plain",
        "text/html"
    ],
    exclude_headers=["x-amzn-trace-id"]  # Exclude AWS-specific headers
)


def describe_event(event: Dict[str, Any]) -> Tuple[str, str, str]:
    """
    Identify the API Gateway payload format of an event
    Returns (format, method, path)
    """
    if event.get('version') == '2.0':
        http = event.get('requestContext', {}).get('http', {})
        return 'v2', http.get('method', 'UNKNOWN'), http.get('path', event.get('rawPath', 'UNKNOWN'))
    if 'httpMethod' in event:
        return 'v1', event.get('httpMethod', 'UNKNOWN'), event.get('path', 'UNKNOWN')
    return 'unknown', 'UNKNOWN', 'UNKNOWN'


def lambda_handler(event, context):
    """
    AWS Lambda entry point

    Args:
        event: API Gateway event data
        context: Lambda runtime context

    Returns:
        API Gateway response format
    """
    logger.info(f"Lambda function: {context.function_name} (version {context.function_version})")

    event_format, method, path = describe_event(event)
    if event_format == 'unknown':
        logger.warning(f"Unknown event format. Event keys: {list(event.keys())}")
    else:
        logger.info(f"API Gateway {event_format} event: {method} {path}")

    try:
        response = handler(event, context)
        logger.info(f"Mangum response status: {response.get('statusCode', 'UNKNOWN')}")
        return response

    except Exception as e:
        logger.error(f"Lambda handler error: {str(e)}", exc_info=True)

        # Return error response in API Gateway format
        return {
            "statusCode": 500,
            "headers": {
                "Content-Type": "application/json",
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
                "Access-Control-Allow-Headers": "Content-Type, Authorization"
            },
            "body": json.dumps({
                "error": "InternalServerError",
                "message": "An unexpected error occurred",
                "requestId": getattr(context, "aws_request_id", None)
            })
        }
