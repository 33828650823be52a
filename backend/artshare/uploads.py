# Local storage for uploaded images

import logging
import os
import uuid

from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from .errors import ValidationError

UPLOAD_URL_PREFIX = '/uploads/'


def allowed_file(filename: str, allowed_extensions) -> bool:
    if '.' not in filename:
        return False
    ext = filename.rsplit('.', 1)[1].lower()
    return ext in allowed_extensions


def _check_is_image(file_storage):
    """Make sure the upload decodes as an image, then rewind it."""
    try:
        with Image.open(file_storage.stream) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        logging.debug(f'Rejected upload {file_storage.filename}: {e}')
        raise ValidationError('Uploaded file is not a valid image',
                              fields={'image': 'Must be an image file'})
    finally:
        file_storage.stream.seek(0)


def save_image(file_storage, upload_folder: str, allowed_extensions) -> str:
    """Store an uploaded image and return its reference (``/uploads/<name>``)."""
    if not file_storage or file_storage.filename == '':
        raise ValidationError('No selected file', fields={'image': 'No file selected'})
    filename = secure_filename(file_storage.filename)
    if not filename or not allowed_file(filename, allowed_extensions):
        raise ValidationError('File type not allowed',
                              fields={'image': f"Allowed types: {', '.join(sorted(allowed_extensions))}"})
    _check_is_image(file_storage)

    stored_name = f'{uuid.uuid4().hex}_{filename}'
    path = os.path.join(upload_folder, stored_name)
    file_storage.save(path)
    logging.debug(f'Uploaded image saved to {path}')
    return UPLOAD_URL_PREFIX + stored_name


def is_local_upload(link) -> bool:
    return isinstance(link, str) and link.startswith(UPLOAD_URL_PREFIX)


def remove_upload(link, upload_folder: str) -> bool:
    """Delete the stored file behind ``link`` if it is one of ours; return whether a file was removed."""
    if not is_local_upload(link):
        return False
    stored_name = secure_filename(link[len(UPLOAD_URL_PREFIX):])
    path = os.path.join(upload_folder, stored_name)
    try:
        os.remove(path)
    except FileNotFoundError:
        logging.warning(f'Upload {path} already removed')
        return False
    logging.debug(f'Removed upload {path}')
    return True
