# src/tezeus/shared/error_codes.py
# Central mapping for the error envelope.
# Keys are stable; the web client matches on them.
ERROR_CODES = {
    # ─── Validation & Requests ──────────────────────────────────────────────
    "validation_error": {
        "http": 400,
        "message": "Validation failed for one or more fields."
    },
    "missing_field": {
        "http": 400,
        "message": "A required field is missing."
    },
    "invalid_request": {
        "http": 422,
        "message": "Invalid request payload."
    },

    # ─── Authentication & Authorization ────────────────────────────────────
    "unauthenticated": {
        "http": 401,
        "message": "User is not authenticated."
    },
    "no_workspace_selected": {
        "http": 400,
        "message": "No workspace selected."
    },
    "forbidden": {
        "http": 403,
        "message": "You are not allowed to perform this action."
    },
    "not_workspace_member": {
        "http": 403,
        "message": "User is not a member of this workspace."
    },
    "insufficient_permissions": {
        "http": 403,
        "message": "Insufficient permissions to manage this workspace."
    },

    # ─── Resources ─────────────────────────────────────────────────────────
    "not_found": {
        "http": 404,
        "message": "Resource not found."
    },
    "conversation_not_found": {
        "http": 404,
        "message": "Conversation not found."
    },
    "user_not_found": {
        "http": 404,
        "message": "User not found."
    },
    "workspace_not_found": {
        "http": 404,
        "message": "Workspace not found."
    },
    "member_not_found": {
        "http": 404,
        "message": "Workspace member not found."
    },
    "already_member": {
        "http": 409,
        "message": "User is already a member of this workspace."
    },
    "conflict": {
        "http": 409,
        "message": "Conflict with existing resource."
    },
    "conversation_closed": {
        "http": 409,
        "message": "Conversation is already closed."
    },
    "conversation_not_assigned": {
        "http": 409,
        "message": "Conversation has not been accepted by any user."
    },

    # ─── Downstream ────────────────────────────────────────────────────────
    "upstream_error": {
        "http": 500,
        "message": "Upstream service call failed."
    },
    "configuration_error": {
        "http": 500,
        "message": "Required configuration is missing."
    },

    # ─── Internal ──────────────────────────────────────────────────────────
    "internal_error": {
        "http": 500,
        "message": "An unexpected error occurred. Please try again later."
    },
    "crypto_error": {
        "http": 500,
        "message": "An unexpected error occurred. Please try again later."
    },
}
