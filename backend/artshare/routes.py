# All API routes are in this one file
from functools import lru_cache

from flask import request, jsonify, Blueprint, current_app, g, send_from_directory
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import db
from .auth import login_required, require_owner
from .errors import Conflict, NotFound, Unauthenticated, ValidationError
from .models import Image, User
from .security import attach_session_cookie, check_password, hash_password, issue_token
from .uploads import is_local_upload, remove_upload, save_image
from .validation import (
    is_valid_url,
    optional_string,
    reject_unknown_fields,
    require_fields,
    require_string,
    validate_category,
    validate_email,
    validate_image_link,
    validate_password,
    validate_price,
)

# This line creates the 'api' object that __init__.py is looking for
api = Blueprint('api', __name__)

INVALID_CREDENTIALS = 'Invalid email or password'

# Request field -> User column, for PUT /users/me
PROFILE_FIELDS = {
    'name': 'name',
    'bio': 'bio',
    'artistType': 'artist_type',
    'profilePictureLink': 'profile_picture_link',
}

# Request field -> Image column, for POST/PUT /images
IMAGE_FIELDS = {
    'artistName': 'artist_name',
    'name': 'name',
    'price': 'price',
    'description': 'description',
    'category': 'category',
    'imageLink': 'image_link',
}


def _request_data():
    """Return the JSON object body, or the form fields of a multipart/urlencoded request."""
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError('Request body must be a JSON object')
        return data
    return request.form.to_dict()


@lru_cache(maxsize=4)
def _placeholder_hash(iterations):
    # Compared against when the email is unknown, so both login failures cost the same
    return hash_password('placeholder-password', iterations)


def _upload_settings():
    return current_app.config['UPLOAD_FOLDER'], current_app.config['ALLOWED_EXTENSIONS']


# Basic index and health endpoints for quick checks
@api.route('/health', methods=['GET'])
def api_health():
    current_app.logger.debug('GET /health invoked')
    return jsonify({'success': True, 'status': 'ok'}), 200


@api.route('/uploads/<path:filename>', methods=['GET'])
def uploaded_file(filename):
    current_app.logger.debug(f'GET /uploads/{filename} invoked')
    return send_from_directory(current_app.config['UPLOAD_FOLDER'], filename)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@api.route('/users/signup', methods=['POST'])
def signup():
    current_app.logger.debug('POST /users/signup invoked')
    data = _request_data()
    require_fields(data, ('name', 'email', 'password'))
    name = require_string(data, 'name', max_length=120)
    email = validate_email(data['email'])
    password = validate_password(data['password'])

    existing = db.session.execute(db.select(User).filter_by(email=email)).scalar_one_or_none()
    if existing is not None:
        current_app.logger.debug('Signup rejected: email already registered')
        raise Conflict('User already exists')

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password, current_app.config['PASSWORD_HASH_ITERATIONS']),
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent signup for the same email
        db.session.rollback()
        raise Conflict('User already exists')

    current_app.logger.debug(f'Created user {user.id}')
    return jsonify({'success': True, 'message': 'Signup successful', 'user': user.to_dict()}), 201


@api.route('/users/login', methods=['POST'])
def login():
    current_app.logger.debug('POST /users/login invoked')
    data = _request_data()
    email = data.get('email')
    password = data.get('password')
    if not email or not password or not isinstance(email, str) or not isinstance(password, str):
        raise ValidationError('Email and password are required')

    user = db.session.execute(
        db.select(User).filter_by(email=email.strip().lower())
    ).scalar_one_or_none()
    if user is None:
        check_password(password, _placeholder_hash(current_app.config['PASSWORD_HASH_ITERATIONS']))
        raise Unauthenticated(INVALID_CREDENTIALS)
    if not check_password(password, user.password_hash):
        raise Unauthenticated(INVALID_CREDENTIALS)

    token = issue_token(user.id)
    response = jsonify({'success': True, 'token': token, 'user': user.to_dict()})
    attach_session_cookie(response, token)
    current_app.logger.debug(f'User {user.id} logged in')
    return response, 200


@api.route('/users/logout', methods=['POST'])
def logout():
    current_app.logger.debug('POST /users/logout invoked')
    response = jsonify({'success': True, 'message': 'User logged out successfully'})
    attach_session_cookie(response, '')
    return response, 200


@api.route('/users/me', methods=['GET'])
@login_required
def get_profile():
    current_app.logger.debug('GET /users/me invoked')
    return jsonify({'success': True, 'user': g.current_user.to_dict()}), 200


@api.route('/users/me', methods=['PUT'])
@login_required
def update_profile():
    current_app.logger.debug('PUT /users/me invoked')
    data = _request_data()
    reject_unknown_fields(data, PROFILE_FIELDS)
    if not data:
        raise ValidationError('No fields to update')

    updates = {}
    if 'name' in data:
        require_fields(data, ('name',))
        updates['name'] = require_string(data, 'name', max_length=120)
    if 'bio' in data:
        updates['bio'] = optional_string(data, 'bio')
    if 'artistType' in data:
        updates['artist_type'] = optional_string(data, 'artistType', max_length=80)
    if 'profilePictureLink' in data:
        link = optional_string(data, 'profilePictureLink', max_length=1024)
        # Stored uploads are only set through POST /users/me/profile-picture
        if link is not None and (is_local_upload(link) or not is_valid_url(link)):
            raise ValidationError('Invalid profile picture link',
                                  fields={'profilePictureLink': 'Must be an http(s) URL'})
        updates['profile_picture_link'] = link

    user_id = g.current_user.id
    result = db.session.execute(update(User).where(User.id == user_id).values(**updates))
    db.session.commit()
    if result.rowcount == 0:
        raise NotFound('User not found')

    user = db.session.get(User, user_id)
    return jsonify({'success': True, 'user': user.to_dict()}), 200


@api.route('/users/me/views', methods=['PATCH'])
@login_required
def increment_profile_views():
    current_app.logger.debug('PATCH /users/me/views invoked')
    views = User.increment_views(g.current_user.id)
    if views is None:
        raise NotFound('User not found')
    return jsonify({'success': True, 'views': views}), 200


@api.route('/users/me/profile-picture', methods=['POST'])
@login_required
def upload_profile_picture():
    current_app.logger.debug('POST /users/me/profile-picture invoked')
    if 'image' not in request.files:
        raise ValidationError('No file uploaded', fields={'image': 'This field is required'})

    upload_folder, allowed = _upload_settings()
    link = save_image(request.files['image'], upload_folder, allowed)
    user = g.current_user
    previous = user.profile_picture_link
    user.profile_picture_link = link
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        remove_upload(link, upload_folder)
        raise

    remove_upload(previous, upload_folder)
    return jsonify({'success': True, 'profilePictureLink': link, 'user': user.to_dict()}), 201


@api.route('/users/me/profile-picture', methods=['DELETE'])
@login_required
def delete_profile_picture():
    current_app.logger.debug('DELETE /users/me/profile-picture invoked')
    user = g.current_user
    if not user.profile_picture_link:
        raise NotFound('Profile picture not found')

    previous = user.profile_picture_link
    user.profile_picture_link = None
    db.session.commit()
    remove_upload(previous, current_app.config['UPLOAD_FOLDER'])
    return jsonify({'success': True, 'message': 'Profile picture deleted successfully'}), 200


@api.route('/users', methods=['GET'])
def list_users():
    current_app.logger.debug('GET /users invoked')
    users = db.session.execute(db.select(User).order_by(User.id)).scalars().all()
    return jsonify({'success': True, 'users': [user.to_dict() for user in users]}), 200


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def _validated_image_fields(data, partial=False):
    """Check the non-link image fields present in ``data`` and return them keyed by column."""
    fields = {}
    if 'artistName' in data or not partial:
        require_fields(data, ('artistName',))
        fields['artist_name'] = require_string(data, 'artistName', max_length=120)
    if 'name' in data or not partial:
        require_fields(data, ('name',))
        fields['name'] = require_string(data, 'name', max_length=200)
    if 'description' in data or not partial:
        require_fields(data, ('description',))
        fields['description'] = require_string(data, 'description')
    if 'price' in data or not partial:
        fields['price'] = validate_price(data.get('price'))
    if 'category' in data or not partial:
        fields['category'] = validate_category(data.get('category'))
    return fields


@api.route('/images', methods=['POST'])
@login_required
def create_image():
    current_app.logger.debug('POST /images invoked')
    data = _request_data()
    reject_unknown_fields(data, IMAGE_FIELDS)
    upload = request.files.get('image')

    require_fields(data, ('artistName', 'name', 'price', 'description', 'category'))
    if upload is None and not data.get('imageLink'):
        raise ValidationError(
            'All fields are required, and either an image file or link must be provided',
            fields={'imageLink': 'Provide an image link or upload an image file'},
        )
    fields = _validated_image_fields(data)

    upload_folder, allowed = _upload_settings()
    if upload is not None:
        fields['image_link'] = save_image(upload, upload_folder, allowed)
    else:
        fields['image_link'] = validate_image_link(data['imageLink'],
                                                   current_app.config['LINK_CHECK_TIMEOUT'])

    image = Image(user_id=g.current_user.id, **fields)
    db.session.add(image)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        remove_upload(fields['image_link'], upload_folder)
        raise

    current_app.logger.debug(f'User {g.current_user.id} created image {image.id}')
    return jsonify({'success': True, 'message': 'Image uploaded successfully',
                    'image': image.to_dict()}), 201


@api.route('/images', methods=['GET'])
@login_required
def list_images():
    current_app.logger.debug('GET /images invoked')
    query = db.select(Image).order_by(Image.id)
    category = request.args.get('category')
    if category:
        query = query.filter_by(category=validate_category(category))
    images = db.session.execute(query).scalars().all()
    return jsonify({'success': True, 'images': [image.to_dict() for image in images]}), 200


@api.route('/images/<int:image_id>', methods=['GET'])
@login_required
def get_image(image_id):
    current_app.logger.debug(f'GET /images/{image_id} invoked')
    image = require_owner(db.session.get(Image, image_id), g.current_user, 'Image not found')
    return jsonify({'success': True, 'image': image.to_dict()}), 200


@api.route('/images/<int:image_id>', methods=['PUT'])
@login_required
def update_image(image_id):
    current_app.logger.debug(f'PUT /images/{image_id} invoked')
    image = require_owner(db.session.get(Image, image_id), g.current_user, 'Image not found')
    data = _request_data()
    reject_unknown_fields(data, IMAGE_FIELDS)
    upload = request.files.get('image')
    if not data and upload is None:
        raise ValidationError('No fields to update')

    fields = _validated_image_fields(data, partial=True)
    upload_folder, allowed = _upload_settings()
    if upload is not None:
        fields['image_link'] = save_image(upload, upload_folder, allowed)
    elif 'imageLink' in data and data['imageLink'] != image.image_link:
        fields['image_link'] = validate_image_link(data['imageLink'],
                                                   current_app.config['LINK_CHECK_TIMEOUT'])

    previous_link = image.image_link
    for column, value in fields.items():
        setattr(image, column, value)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        if upload is not None:
            remove_upload(fields['image_link'], upload_folder)
        raise

    if 'image_link' in fields and fields['image_link'] != previous_link:
        remove_upload(previous_link, upload_folder)
    return jsonify({'success': True, 'message': 'Image updated successfully',
                    'image': image.to_dict()}), 200


@api.route('/images/<int:image_id>', methods=['DELETE'])
@login_required
def delete_image(image_id):
    current_app.logger.debug(f'DELETE /images/{image_id} invoked')
    image = require_owner(db.session.get(Image, image_id), g.current_user, 'Image not found')
    link = image.image_link
    db.session.delete(image)
    db.session.commit()
    remove_upload(link, current_app.config['UPLOAD_FOLDER'])
    return jsonify({'success': True, 'message': 'Image deleted successfully'}), 200


@api.route('/images/<int:image_id>/views', methods=['PATCH'])
def increment_image_views(image_id):
    current_app.logger.debug(f'PATCH /images/{image_id}/views invoked')
    views = Image.increment_views(image_id)
    if views is None:
        raise NotFound('Image not found')
    return jsonify({'success': True, 'message': 'View count incremented', 'views': views}), 200


@api.route('/images/<int:image_id>/views', methods=['GET'])
def get_image_views(image_id):
    current_app.logger.debug(f'GET /images/{image_id}/views invoked')
    image = db.session.get(Image, image_id)
    if image is None:
        raise NotFound('Image not found')
    return jsonify({'success': True, 'views': image.views}), 200
