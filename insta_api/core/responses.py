# insta_api/core/responses.py
from flask import jsonify

from insta_api.core.query import total_pages


def success(data=None, message: str = "Successful", status_code: int = 200, **extra):
    """Builds the success envelope shared by every handler."""
    body = {"isError": False, "statusCode": status_code, "message": message}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status_code


def failure(message: str, status_code: int):
    """Builds the error envelope. Also returned inline by handlers that reject without raising."""
    return jsonify({"isError": True, "statusCode": status_code, "message": message}), status_code


def paginated(items, options, total: int, message: str = "Successful"):
    return success(
        items,
        message=message,
        currentPage=options.page,
        totalPage=total_pages(total, options.limit),
        totalDocs=total,
    )
