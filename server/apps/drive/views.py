"""JSON views for drive app.

Views only translate HTTP to business logic calls and back.
Error responses never include filesystem paths or tracebacks.
"""

import json
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any, Final

from django.conf import settings
from django.contrib.auth import authenticate, get_user_model, login, logout
from django.http import (
    FileResponse,
    HttpRequest,
    HttpResponse,
    HttpResponseNotFound,
    JsonResponse,
)
from django.utils import timezone
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import (
    require_GET,
    require_http_methods,
    require_POST,
)

from server.apps.drive.exceptions import (
    PathTraversalError,
    StorageIOError,
    StoredFileNotFoundError,
)
from server.apps.drive.infrastructure.context import StorageContext
from server.apps.drive.infrastructure.metadata import BYTES_PER_MB
from server.apps.drive.logic.account_operations import (
    ensure_account_root,
    get_or_create_account,
)
from server.apps.drive.logic.file_operations import (
    delete_file,
    get_stored_file,
    list_user_files,
)
from server.apps.drive.logic.quota_operations import get_usage_report
from server.apps.drive.logic.upload_operations import (
    IncomingFile,
    UploadRejected,
    execute_upload,
)

User = get_user_model()
logger = logging.getLogger(__name__)

_View = Callable[..., HttpResponse]

_SERVICE_NAME: Final = 'user-drive'
_SERVICE_VERSION: Final = '1.0.0'

# Multipart field carrying the uploaded files
_FILES_FIELD: Final = 'files'


def _error(message: str, status: int) -> JsonResponse:
    return JsonResponse({'error': message}, status=status)


def _internal_error() -> JsonResponse:
    return _error('Internal server error', status=500)


def _json_login_required(view: _View) -> _View:
    """Reject anonymous requests with 401 instead of a redirect."""
    @wraps(view)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> HttpResponse:
        if not request.user.is_authenticated:
            return _error('Authentication required', status=401)
        return view(request, *args, **kwargs)
    return wrapper


def _staff_required(view: _View) -> _View:
    @wraps(view)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> HttpResponse:
        if not request.user.is_staff:
            return _error('Access denied. Admin only.', status=403)
        return view(request, *args, **kwargs)
    return wrapper


def _request_data(request: HttpRequest) -> dict[str, Any]:
    if request.content_type == 'application/json':
        try:
            payload = json.loads(request.body or b'{}')
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}
    return request.POST.dict()


def _usage_payload(user: Any) -> dict[str, Any]:
    account = get_or_create_account(user)
    report = get_usage_report(
        StorageContext.from_settings(),
        account.identity,
        account.quota_mb,
    )
    return {
        'user_id': user.pk,
        'username': user.get_username(),
        'storage_used_bytes': report.storage_used_bytes,
        'storage_used_formatted': report.storage_used_formatted,
        'storage_quota_bytes': report.storage_quota_bytes,
        'storage_quota_formatted': report.storage_quota_formatted,
        'usage_percentage': report.usage_percentage,
    }


@require_POST
@ensure_csrf_cookie
def api_login(request: HttpRequest) -> HttpResponse:
    """Log user in and make sure their storage directory exists."""
    data = _request_data(request)
    user = authenticate(
        request,
        username=data.get('username', ''),
        password=data.get('password', ''),
    )
    if user is None:
        return _error('Invalid credentials', status=401)

    login(request, user)
    try:
        ensure_account_root(
            StorageContext.from_settings(),
            get_or_create_account(user),
        )
    except StorageIOError:
        return _internal_error()

    logger.info('User logged in: %s', user.get_username())
    return JsonResponse({'success': True, 'role': _role(user)})


@require_http_methods(['GET', 'POST'])
def api_logout(request: HttpRequest) -> HttpResponse:
    """Log user out."""
    logout(request)
    return JsonResponse({'success': True})


@require_GET
@ensure_csrf_cookie
@_json_login_required
def me(request: HttpRequest) -> HttpResponse:
    """Describe the logged in user.

    Also hands out the CSRF cookie, even to anonymous callers, so
    a client can call this before logging in.
    """
    return JsonResponse({
        'username': request.user.get_username(),
        'role': _role(request.user),
        'userId': request.user.pk,
    })


@require_GET
@_json_login_required
def file_list(request: HttpRequest) -> HttpResponse:
    """List the user's files, most recent first."""
    account = get_or_create_account(request.user)
    try:
        entries = list_user_files(
            StorageContext.from_settings(),
            account.identity,
        )
    except StorageIOError:
        return _error('Failed to read directory', status=500)

    return JsonResponse(
        [
            {
                'name': entry.name,
                'size': entry.size_bytes,
                'sizeFormatted': entry.size_formatted,
                'modified': entry.modified_at.isoformat(),
                'url': entry.download_url,
            }
            for entry in entries
        ],
        safe=False,
    )


@require_http_methods(['DELETE'])
@_json_login_required
def file_delete(request: HttpRequest, filename: str) -> HttpResponse:
    """Delete one of the user's files."""
    account = get_or_create_account(request.user)
    try:
        delete_file(StorageContext.from_settings(), account.identity, filename)
    except PathTraversalError as error:
        return _error(str(error), status=400)
    except StoredFileNotFoundError:
        return _error('File not found', status=404)
    except StorageIOError:
        return _error('Failed to delete file', status=500)
    return JsonResponse({'success': True})


@require_GET
@_json_login_required
def download(request: HttpRequest, filename: str) -> HttpResponse:
    """Send one of the user's files as attachment."""
    account = get_or_create_account(request.user)
    try:
        path = get_stored_file(
            StorageContext.from_settings(),
            account.identity,
            filename,
        )
    except (PathTraversalError, StoredFileNotFoundError):
        return HttpResponseNotFound('File not found')

    try:
        stream = path.open('rb')
    except OSError:
        logger.exception('Failed to open file for download: %s', path)
        return HttpResponseNotFound('File not found')
    return FileResponse(stream, as_attachment=True, filename=filename)


@require_POST
@_json_login_required
def upload(request: HttpRequest) -> HttpResponse:
    """Store a batch of files if it fits into the user's quota."""
    uploaded_files = request.FILES.getlist(_FILES_FIELD)
    if not uploaded_files:
        return _error('No files uploaded', status=400)

    max_files = settings.MAX_FILES_PER_UPLOAD
    if len(uploaded_files) > max_files:
        return _error(
            f'Too many files. Maximum is {max_files} files per upload',
            status=400,
        )

    max_size_mb = settings.MAX_FILE_SIZE_MB
    if any(uploaded.size > max_size_mb * BYTES_PER_MB for uploaded in uploaded_files):
        return _error(
            f'File too large. Maximum size is {max_size_mb}MB',
            status=413,
        )

    account = get_or_create_account(request.user)
    incoming_files = [
        IncomingFile(
            name=uploaded.name,
            data=uploaded,
            size=uploaded.size,
            content_type=uploaded.content_type,
        )
        for uploaded in uploaded_files
    ]
    try:
        result = execute_upload(
            StorageContext.from_settings(),
            account.identity,
            incoming_files,
            account.quota_bytes,
        )
    except PathTraversalError as error:
        return _error(str(error), status=400)
    except StorageIOError:
        return _internal_error()

    if isinstance(result, UploadRejected):
        return _error(result.message, status=400)

    return JsonResponse({
        'success': True,
        'files': [
            {
                'originalname': stored.original_name,
                'filename': stored.stored_name,
                'size': stored.size_bytes,
                'mimetype': stored.mime_type,
            }
            for stored in result.files
        ],
        'total_size': result.total_size,
        'file_count': result.file_count,
        'storage_used': result.storage_used,
        'storage_quota': result.storage_quota,
        'usage_percentage': result.usage_percentage,
    })


@require_GET
@_json_login_required
def my_usage(request: HttpRequest) -> HttpResponse:
    """Report storage usage of the logged in user."""
    try:
        return JsonResponse(_usage_payload(request.user))
    except StorageIOError:
        return _internal_error()


@require_GET
@_json_login_required
@_staff_required
def user_usage(request: HttpRequest, user_id: int) -> HttpResponse:
    """Report storage usage of any user (staff only)."""
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        return _error('User not found', status=404)
    try:
        return JsonResponse(_usage_payload(user))
    except StorageIOError:
        return _internal_error()


@require_GET
def health(request: HttpRequest) -> HttpResponse:
    """Liveness check."""
    return JsonResponse({
        'status': 'ok',
        'timestamp': timezone.now().isoformat(),
        'service': _SERVICE_NAME,
        'version': _SERVICE_VERSION,
    })


def _role(user: Any) -> str:
    return 'admin' if user.is_staff else 'user'
