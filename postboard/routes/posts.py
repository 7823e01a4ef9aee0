"""
Post routes: list, create, show, edit, update and delete.

Failures answer with a plain-text body and the status carried by the
raised PostboardError.
"""
from flask import (
    Blueprint, Response, current_app, redirect, render_template, request, url_for
)

from postboard.database import STATUS_ACTIVE, get_db
from postboard.errors import (
    NoFileError, PostboardError, RecordNotFoundError, StorageWriteError
)
from postboard.services import get_coordinator

bp = Blueprint('posts', __name__)


def _plain_error(message: str, status: int) -> Response:
    return Response(message, status=status, mimetype='text/plain')


def _uploaded_file():
    """Return the attachment from the form, or None when none was chosen."""
    file = request.files.get(current_app.config['UPLOAD_FIELD_NAME'])
    if file is None or not file.filename:
        return None
    return file


def _get_active_post(post_id):
    post = get_db().get_post(post_id)
    if post is None or post['status'] != STATUS_ACTIVE:
        raise RecordNotFoundError(f"Post not found: {post_id}")
    return post


@bp.route('/')
def home():
    """Redirect to the post list."""
    return redirect(url_for('posts.list_posts'))


@bp.route('/post')
def list_posts():
    """Render all posts."""
    try:
        posts = get_db().list_posts()
    except PostboardError as e:
        current_app.logger.error(f"Error getting posts: {e}")
        return _plain_error('Error retrieving posts', e.status_code)

    return render_template('index.html', posts=posts)


@bp.route('/posts/new')
def new_post():
    """Render the create form."""
    return render_template('new.html')


@bp.route('/posts', methods=['POST'])
def create_post():
    """
    Create a post from a multipart form.

    Expected form data:
        - avatar: attachment (required)
        - any other fields are stored on the post as is
    """
    file = _uploaded_file()
    if file is None:
        return _plain_error('No file uploaded.', 400)

    try:
        post_id = get_coordinator().create_from_upload(
            file.read(),
            file.mimetype,
            file.filename,
            request.form.to_dict()
        )
    except NoFileError as e:
        return _plain_error('No file uploaded.', e.status_code)
    except StorageWriteError as e:
        current_app.logger.error(f"Error uploading to object store: {e}")
        return _plain_error('Error uploading file.', e.status_code)
    except PostboardError as e:
        current_app.logger.error(f"Error creating post: {e}")
        return _plain_error('Error creating post', e.status_code)

    current_app.logger.info(f"Created post {post_id}")
    return redirect(url_for('posts.list_posts'))


@bp.route('/posts/<post_id>', methods=['GET'])
def show_post(post_id):
    """Render a single post."""
    try:
        post = _get_active_post(post_id)
    except RecordNotFoundError as e:
        return _plain_error('Post not found', e.status_code)
    except PostboardError as e:
        current_app.logger.error(f"Error fetching post {post_id}: {e}")
        return _plain_error('Error fetching post', e.status_code)

    return render_template('show.html', post=post['data'], id=post_id)


@bp.route('/posts/<post_id>/edit', methods=['GET'])
def edit_post(post_id):
    """Render the edit form for a post."""
    try:
        post = _get_active_post(post_id)
    except RecordNotFoundError as e:
        return _plain_error('Post not found', e.status_code)
    except PostboardError as e:
        current_app.logger.error(f"Error fetching post {post_id}: {e}")
        return _plain_error('Error fetching post', e.status_code)

    return render_template('edit.html', post=post['data'], id=post_id)


@bp.route('/posts/<post_id>', methods=['PATCH', 'PUT'])
def update_post(post_id):
    """
    Update a post's content and, when a new attachment is sent, its file.

    Expected form data:
        - content: new content
        - avatar: replacement attachment (optional)
    """
    file = _uploaded_file()

    try:
        get_coordinator().update_from_upload(
            post_id,
            file.read() if file else None,
            request.form.get('content'),
            mime_type=file.mimetype if file else None,
            original_name=file.filename if file else None
        )
    except RecordNotFoundError as e:
        return _plain_error('Post not found', e.status_code)
    except StorageWriteError as e:
        current_app.logger.error(f"Error uploading to object store: {e}")
        return _plain_error('Error uploading file.', e.status_code)
    except PostboardError as e:
        current_app.logger.error(f"Error updating post {post_id}: {e}")
        return _plain_error('Error updating post', e.status_code)

    return redirect(url_for('posts.list_posts'))


@bp.route('/posts/<post_id>', methods=['DELETE'])
def delete_post(post_id):
    """Delete a post. Deleting a missing post is not an error."""
    try:
        get_db().delete_post(post_id)
    except PostboardError as e:
        current_app.logger.error(f"Error deleting post {post_id}: {e}")
        return _plain_error('Error deleting post', e.status_code)

    return redirect(url_for('posts.list_posts'))
