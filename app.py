# app.py
import logging
import os
import random
import re
import secrets
import threading
import time
from datetime import datetime, timezone
from functools import wraps
from math import ceil

import click
from dotenv import load_dotenv
from flask import (Flask, render_template, redirect, url_for, flash, request, jsonify, session,
                   send_from_directory, has_request_context)
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager, UserMixin, login_user, logout_user, login_required, current_user
from flask_sqlalchemy import SQLAlchemy
from flask_wtf import FlaskForm
from flask_wtf.csrf import generate_csrf
from flask_wtf.file import FileField, FileRequired, FileAllowed
from wtforms import (StringField, PasswordField, SubmitField, SelectField, TextAreaField, BooleanField,
                     IntegerField)
from wtforms.validators import DataRequired, Email, Length, Optional, Regexp, NumberRange, ValidationError
from werkzeug.datastructures import CombinedMultiDict, MultiDict
from werkzeug.security import generate_password_hash, check_password_hash
from werkzeug.utils import secure_filename

load_dotenv()


def _env_flag(name, default='false'):
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes')


# --- App and DB Configuration ---
basedir = os.path.abspath(os.path.dirname(__file__))
app = Flask(__name__)
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY') or secrets.token_hex(32)
app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///' + os.path.join(basedir, 'app.db'))
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['UPLOAD_FOLDER'] = os.environ.get('UPLOAD_FOLDER', os.path.join(basedir, 'uploads'))
app.config['MAX_CONTENT_LENGTH'] = int(os.environ.get('MAX_UPLOAD_MB', '50')) * 1024 * 1024
app.config['SESSION_TIMEOUT_SECONDS'] = int(os.environ.get('SESSION_TIMEOUT_SECONDS', '1200'))
app.config['SESSION_WARNING_SECONDS'] = int(os.environ.get('SESSION_WARNING_SECONDS', '300'))
app.config['MAX_LOGIN_ATTEMPTS'] = int(os.environ.get('MAX_LOGIN_ATTEMPTS', '5'))
app.config['LOGIN_LOCKOUT_SECONDS'] = int(os.environ.get('LOGIN_LOCKOUT_SECONDS', '900'))
app.config['SESSION_COOKIE_NAME'] = 'cid.session.id'
app.config['SESSION_COOKIE_HTTPONLY'] = True
app.config['SESSION_COOKIE_SAMESITE'] = 'Strict'
app.config['SESSION_COOKIE_SECURE'] = _env_flag('SESSION_COOKIE_SECURE')
app.config['RATELIMIT_ENABLED'] = _env_flag('RATELIMIT_ENABLED', 'true')
app.config['RATELIMIT_STORAGE_URI'] = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')

logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
audit_logger = logging.getLogger('cid.audit')

db = SQLAlchemy(app)
login_manager = LoginManager(app)
login_manager.login_view = 'admin_login'
login_manager.login_message_category = 'info'
limiter = Limiter(get_remote_address, app=app)

ADMIN_ROLES = ('admin', 'super_admin')
# Tokens accepted as "false" for checkboxes fed from JSON payloads.
FALSE_VALUES = ('false', 'False', '0', 'off', '')
IMAGE_EXTENSIONS = ['jpg', 'jpeg', 'png', 'gif', 'webp']
VIDEO_EXTENSIONS = ['mp4', 'webm', 'ogg']
SLUG_PATTERN = r'^[a-z0-9]+(?:-[a-z0-9]+)*$'

COMPLAINT_TYPES = [('general', 'General'), ('cybercrime', 'Cyber Crime'), ('women_safety', 'Women Safety'),
                   ('economic_offence', 'Economic Offence')]
COMPLAINT_STATUSES = [('pending', 'Pending'), ('under_investigation', 'Under Investigation'),
                      ('resolved', 'Resolved'), ('closed', 'Closed')]
PRIORITIES = [('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('critical', 'Critical')]
VIDEO_CATEGORIES = [('news', 'News'), ('operations', 'Operations'), ('awareness', 'Awareness')]
PHOTO_CATEGORIES = [('operations', 'Operations'), ('events', 'Events'), ('awards', 'Awards'),
                    ('training', 'Training')]
NEWS_CATEGORIES = [('general', 'General'), ('operations', 'Operations'), ('alerts', 'Alerts'),
                   ('press_release', 'Press Release')]

SEVERITY_LEVELS = {'LOW': logging.INFO, 'MEDIUM': logging.INFO, 'HIGH': logging.WARNING, 'CRITICAL': logging.ERROR}


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _now_ms():
    return int(time.time() * 1000)


def _iso(value):
    return value.isoformat() if value else None


def log_security_event(event, details=None, severity='MEDIUM', status='INFO'):
    """Write one line to the audit log, with request context when there is one."""
    context = {}
    if has_request_context():
        context = {
            'ip': request.remote_addr or 'unknown',
            'path': request.path,
            'user_agent': request.headers.get('User-Agent', 'unknown'),
        }
    audit_logger.log(SEVERITY_LEVELS.get(severity, logging.INFO), '%s severity=%s status=%s details=%s context=%s',
                     event, severity, status, details or {}, context)


# --- Login attempt tracking ---
class LoginAttemptTracker:
    """Counts consecutive failed logins per username and locks the name out for a while."""

    def __init__(self, max_attempts, lockout_seconds, clock=time.time):
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self._clock = clock
        self._attempts = {}
        self._lock = threading.Lock()

    def is_locked(self, identifier):
        with self._lock:
            entry = self._attempts.get(identifier)
            if not entry or entry['locked_until'] is None:
                return False
            if self._clock() < entry['locked_until']:
                return True
            # lockout elapsed, start counting again
            del self._attempts[identifier]
            return False

    def record_failure(self, identifier):
        """Count a failure; failures older than the lockout window are forgotten."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            entry = self._attempts.setdefault(identifier, {'count': 0, 'first_failure': now, 'locked_until': None})
            entry['count'] += 1
            if entry['count'] >= self.max_attempts:
                entry['locked_until'] = now + self.lockout_seconds
                audit_logger.warning('Account locked for excessive login attempts: %s', identifier)
            return entry['count']

    def _prune(self, now):
        for identifier, entry in list(self._attempts.items()):
            if entry['locked_until'] is None:
                stale = now - entry['first_failure'] >= self.lockout_seconds
            else:
                stale = now >= entry['locked_until']
            if stale:
                del self._attempts[identifier]

    def record_success(self, identifier):
        with self._lock:
            self._attempts.pop(identifier, None)

    def reset(self):
        with self._lock:
            self._attempts.clear()


login_attempts = LoginAttemptTracker(app.config['MAX_LOGIN_ATTEMPTS'], app.config['LOGIN_LOCKOUT_SECONDS'])


def validate_password(password):
    """Return the list of password policy violations (empty when the password is acceptable)."""
    errors = []
    if len(password) < 8:
        errors.append('Password must be at least 8 characters long')
    if not re.search(r'[A-Z]', password):
        errors.append('Password must contain an uppercase letter')
    if not re.search(r'[a-z]', password):
        errors.append('Password must contain a lowercase letter')
    if not re.search(r'\d', password):
        errors.append('Password must contain a number')
    if not re.search(r'[^A-Za-z0-9]', password):
        errors.append('Password must contain a special character')
    return errors


# --- Custom Decorators ---
def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_user.role not in ADMIN_ROLES:
            log_security_event('ADMIN_ACCESS_DENIED', {'username': current_user.username, 'role': current_user.role},
                               'HIGH', 'FAILURE')
            if _wants_json():
                return jsonify(message='Admin access required'), 403
            flash('You do not have permission to access this page.', 'danger')
            return redirect(url_for('home'))
        return f(*args, **kwargs)
    return decorated_function


# --- Models ---
class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    first_name = db.Column(db.String(80))
    last_name = db.Column(db.String(80))
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='user')  # user, admin, super_admin
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role,
            'firstName': self.first_name,
            'lastName': self.last_name,
        }


class Page(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    slug = db.Column(db.String(150), unique=True, nullable=False)
    title = db.Column(db.Text, nullable=False)
    content = db.Column(db.Text)
    meta_title = db.Column(db.String(200))
    meta_description = db.Column(db.Text)
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    author_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    author = db.relationship('User', backref='pages')

    def to_dict(self):
        return {
            'id': self.id,
            'slug': self.slug,
            'title': self.title,
            'content': self.content,
            'metaTitle': self.meta_title,
            'metaDescription': self.meta_description,
            'isPublished': self.is_published,
            'authorId': self.author_id,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class Video(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text)
    file_name = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(255), nullable=False)
    thumbnail_path = db.Column(db.String(255))
    duration = db.Column(db.Integer)  # seconds
    category = db.Column(db.String(30), nullable=False, default='news')
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    uploaded_by = db.Column(db.Integer, db.ForeignKey('user.id'))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'fileName': self.file_name,
            'filePath': self.file_path,
            'thumbnailPath': self.thumbnail_path,
            'duration': self.duration,
            'category': self.category,
            'isPublished': self.is_published,
            'uploadedBy': self.uploaded_by,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class Photo(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text)
    file_name = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(30), nullable=False, default='operations')
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    uploaded_by = db.Column(db.Integer, db.ForeignKey('user.id'))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'fileName': self.file_name,
            'filePath': self.file_path,
            'category': self.category,
            'isPublished': self.is_published,
            'uploadedBy': self.uploaded_by,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class PhotoAlbum(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text)
    cover_photo_id = db.Column(db.Integer, db.ForeignKey('photo.id'))
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'))
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    entries = db.relationship('PhotoAlbumPhoto', backref='album', cascade='all, delete-orphan',
                              order_by='PhotoAlbumPhoto.sort_order')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'coverPhotoId': self.cover_photo_id,
            'isPublished': self.is_published,
            'photoIds': [entry.photo_id for entry in self.entries],
            'createdBy': self.created_by,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class PhotoAlbumPhoto(db.Model):
    __tablename__ = 'photo_album_photos'
    id = db.Column(db.Integer, primary_key=True)
    album_id = db.Column(db.Integer, db.ForeignKey('photo_album.id'), nullable=False)
    photo_id = db.Column(db.Integer, db.ForeignKey('photo.id'), nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=0)


class Complaint(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    complaint_number = db.Column(db.String(30), unique=True, nullable=False)
    type = db.Column(db.String(30), nullable=False)
    subject = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=False)
    complainant_name = db.Column(db.String(150), nullable=False)
    complainant_email = db.Column(db.String(120))
    complainant_phone = db.Column(db.String(30))
    complainant_address = db.Column(db.Text)
    status = db.Column(db.String(30), nullable=False, default='pending')
    priority = db.Column(db.String(20), nullable=False, default='medium')
    assigned_to = db.Column(db.Integer, db.ForeignKey('user.id'))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    assignee = db.relationship('User', backref='assigned_complaints')

    def to_dict(self):
        return {
            'id': self.id,
            'complaintNumber': self.complaint_number,
            'type': self.type,
            'subject': self.subject,
            'description': self.description,
            'complainantName': self.complainant_name,
            'complainantEmail': self.complainant_email,
            'complainantPhone': self.complainant_phone,
            'complainantAddress': self.complainant_address,
            'status': self.status,
            'priority': self.priority,
            'assignedTo': self.assigned_to,
            'notes': self.notes,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }

    def to_public_dict(self):
        # citizens tracking a complaint only see its progress
        return {
            'complaintNumber': self.complaint_number,
            'status': self.status,
            'createdAt': _iso(self.created_at),
            'type': self.type,
            'subject': self.subject,
        }


class News(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.Text, nullable=False)
    content = db.Column(db.Text, nullable=False)
    excerpt = db.Column(db.Text)
    featured_image = db.Column(db.String(255))
    category = db.Column(db.String(30), nullable=False, default='general')
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    is_pinned = db.Column(db.Boolean, nullable=False, default=False)
    author_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    published_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    author = db.relationship('User', backref='news')

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'excerpt': self.excerpt,
            'featuredImage': self.featured_image,
            'category': self.category,
            'isPublished': self.is_published,
            'isPinned': self.is_pinned,
            'authorId': self.author_id,
            'publishedAt': _iso(self.published_at),
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class Wing(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(150), nullable=False)
    slug = db.Column(db.String(150), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=False)
    features = db.Column(db.JSON, nullable=False, default=list)
    contact_email = db.Column(db.String(120))
    contact_phone = db.Column(db.String(30))
    display_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'description': self.description,
            'features': list(self.features or []),
            'contactEmail': self.contact_email,
            'contactPhone': self.contact_phone,
            'displayOrder': self.display_order,
            'isActive': self.is_active,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class SeniorOfficer(db.Model):
    __tablename__ = 'senior_officers'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    position = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    location = db.Column(db.String(150))
    phone = db.Column(db.String(30))
    email = db.Column(db.String(120))
    photo_url = db.Column(db.String(255))
    display_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'position': self.position,
            'description': self.description,
            'location': self.location,
            'phone': self.phone,
            'email': self.email,
            'photoUrl': self.photo_url,
            'displayOrder': self.display_order,
            'isActive': self.is_active,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class Alert(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(150), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=False)
    content = db.Column(db.Text)
    category = db.Column(db.String(50), nullable=False, default='general')
    icon_name = db.Column(db.String(50))
    priority = db.Column(db.Integer, nullable=False, default=0)  # higher shows first
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'description': self.description,
            'content': self.content,
            'category': self.category,
            'iconName': self.icon_name,
            'priority': self.priority,
            'isActive': self.is_active,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class MenuItem(db.Model):
    __tablename__ = 'menu_items'
    id = db.Column(db.Integer, primary_key=True)
    label = db.Column(db.String(100), nullable=False)
    url = db.Column(db.String(255))
    parent_id = db.Column(db.Integer, db.ForeignKey('menu_items.id'))
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'label': self.label,
            'url': self.url,
            'parentId': self.parent_id,
            'sortOrder': self.sort_order,
            'isActive': self.is_active,
        }


DEFAULT_MENU = [
    ('Home', '/'),
    ('News', '/news'),
    ('Specialized Wings', '/wings'),
    ('Senior Officers', '/officers'),
    ('Alerts', '/alerts'),
    ('Photo Gallery', '/photos'),
    ('Video Gallery', '/videos'),
    ('Lodge Complaint', '/complaints/lodge'),
]


# --- Flask-Login User Loader ---
@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    log_security_event('UNAUTHENTICATED_ACCESS', {'session_id': session.get('session_id')}, 'MEDIUM', 'FAILURE')
    if _wants_json():
        return jsonify(message='Authentication required'), 401
    flash('Please log in to access this page.', 'info')
    return redirect(url_for('admin_login', next=request.path))


# --- Forms ---
class UniqueSlug:
    """Rejects a slug already used by another row of ``model``.

    Edit views set ``form.editing_id`` so the row being edited does not clash with itself.
    """

    def __init__(self, model, message='That slug is already in use.'):
        self.model = model
        self.message = message

    def __call__(self, form, field):
        existing = self.model.query.filter_by(slug=field.data).first()
        if existing and existing.id != getattr(form, 'editing_id', None):
            raise ValidationError(self.message)


class LoginForm(FlaskForm):
    username = StringField('Username', validators=[DataRequired(), Length(max=80)])
    password = PasswordField('Password', validators=[DataRequired()])
    submit = SubmitField('Login')


class PageForm(FlaskForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=300)])
    slug = StringField('Slug', validators=[DataRequired(), Length(max=150), Regexp(SLUG_PATTERN), UniqueSlug(Page)])
    content = TextAreaField('Content', validators=[Optional()])
    meta_title = StringField('Meta Title', validators=[Optional(), Length(max=200)])
    meta_description = TextAreaField('Meta Description', validators=[Optional()])
    is_published = BooleanField('Published', false_values=FALSE_VALUES)
    submit = SubmitField('Save Page')


class NewsForm(FlaskForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=300)])
    content = TextAreaField('Content', validators=[DataRequired()])
    excerpt = TextAreaField('Excerpt', validators=[Optional(), Length(max=500)])
    featured_image = StringField('Featured Image URL', validators=[Optional(), Length(max=255)])
    category = SelectField('Category', choices=NEWS_CATEGORIES, default='general')
    is_published = BooleanField('Published', false_values=FALSE_VALUES)
    is_pinned = BooleanField('Pinned', false_values=FALSE_VALUES)
    submit = SubmitField('Save News')


class VideoForm(FlaskForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=300)])
    description = TextAreaField('Description', validators=[Optional()])
    category = SelectField('Category', choices=VIDEO_CATEGORIES, default='news')
    duration = IntegerField('Duration (seconds)', validators=[Optional(), NumberRange(min=0)])
    is_published = BooleanField('Published', false_values=FALSE_VALUES)
    submit = SubmitField('Save Video')


class VideoUploadForm(VideoForm):
    video = FileField('Video File', validators=[FileRequired(), FileAllowed(VIDEO_EXTENSIONS, 'Videos only!')])
    thumbnail = FileField('Thumbnail', validators=[FileAllowed(IMAGE_EXTENSIONS, 'Images only!')])


class PhotoForm(FlaskForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=300)])
    description = TextAreaField('Description', validators=[Optional()])
    category = SelectField('Category', choices=PHOTO_CATEGORIES, default='operations')
    is_published = BooleanField('Published', false_values=FALSE_VALUES)
    submit = SubmitField('Save Photo')


class PhotoUploadForm(PhotoForm):
    photo = FileField('Photo', validators=[FileRequired(), FileAllowed(IMAGE_EXTENSIONS, 'Images only!')])


class ImageUploadForm(FlaskForm):
    image = FileField('Image', validators=[FileRequired(), FileAllowed(IMAGE_EXTENSIONS, 'Images only!')])


class PhotoAlbumForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(), Length(max=200)])
    description = TextAreaField('Description', validators=[Optional()])
    photo_ids = TextAreaField('Photo IDs', validators=[Optional()])
    is_published = BooleanField('Published', false_values=FALSE_VALUES)

    def validate_photo_ids(self, field):
        for token in (field.data or '').split():
            if not token.isdigit() or db.session.get(Photo, int(token)) is None:
                raise ValidationError(f'Unknown photo id: {token}')


class ComplaintForm(FlaskForm):
    type = SelectField('Complaint Type', choices=COMPLAINT_TYPES, validators=[DataRequired()])
    subject = StringField('Subject', validators=[DataRequired(), Length(max=300)])
    description = TextAreaField('Details', validators=[DataRequired(), Length(min=10, max=5000)])
    complainant_name = StringField('Your Name', validators=[DataRequired(), Length(max=150)])
    complainant_email = StringField('Email', validators=[Optional(), Email()])
    complainant_phone = StringField('Phone', validators=[Optional(), Regexp(r'^[0-9+\-\s()]{7,20}$')])
    complainant_address = TextAreaField('Address', validators=[Optional(), Length(max=1000)])
    submit = SubmitField('Submit Complaint')


class ComplaintUpdateForm(FlaskForm):
    status = SelectField('Status', choices=COMPLAINT_STATUSES)
    priority = SelectField('Priority', choices=PRIORITIES)
    notes = TextAreaField('Notes', validators=[Optional()])
    assigned_to = IntegerField('Assigned To (user id)', validators=[Optional()])
    submit = SubmitField('Update Complaint')

    def validate_assigned_to(self, field):
        if field.data is not None and db.session.get(User, field.data) is None:
            raise ValidationError('Unknown user.')


class ComplaintLookupForm(FlaskForm):
    complaint_number = StringField('Complaint Number', validators=[DataRequired(), Length(max=30)])
    submit = SubmitField('Check Status')


class WingForm(FlaskForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=150)])
    slug = StringField('Slug', validators=[DataRequired(), Length(max=150), Regexp(SLUG_PATTERN), UniqueSlug(Wing)])
    description = TextAreaField('Description', validators=[DataRequired()])
    features = TextAreaField('Features (one per line)', validators=[Optional()])
    contact_email = StringField('Contact Email', validators=[Optional(), Email()])
    contact_phone = StringField('Contact Phone', validators=[Optional(), Length(max=30)])
    display_order = IntegerField('Display Order', default=0, validators=[Optional()])
    is_active = BooleanField('Active', default=True, false_values=FALSE_VALUES)
    submit = SubmitField('Save Wing')


class SeniorOfficerForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(), Length(max=150)])
    position = StringField('Position', validators=[DataRequired(), Length(max=150)])
    description = TextAreaField('Description', validators=[Optional()])
    location = StringField('Location', validators=[Optional(), Length(max=150)])
    phone = StringField('Phone', validators=[Optional(), Length(max=30)])
    email = StringField('Email', validators=[Optional(), Email()])
    photo_url = StringField('Photo URL', validators=[Optional(), Length(max=255)])
    display_order = IntegerField('Display Order', default=0, validators=[Optional()])
    is_active = BooleanField('Active', default=True, false_values=FALSE_VALUES)
    submit = SubmitField('Save Officer')


class AlertForm(FlaskForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=200)])
    slug = StringField('Slug', validators=[DataRequired(), Length(max=150), Regexp(SLUG_PATTERN), UniqueSlug(Alert)])
    description = TextAreaField('Description', validators=[DataRequired()])
    content = TextAreaField('Content', validators=[Optional()])
    category = StringField('Category', default='general', validators=[DataRequired(), Length(max=50)])
    icon_name = StringField('Icon', validators=[Optional(), Length(max=50)])
    priority = IntegerField('Priority', default=0, validators=[Optional()])
    is_active = BooleanField('Active', default=True, false_values=FALSE_VALUES)
    submit = SubmitField('Save Alert')


# --- Helpers ---
def _wants_json():
    return request.path.startswith('/api/') or request.is_json


def _snake_case(key):
    return re.sub(r'(?<!^)(?=[A-Z])', '_', key).lower()


def _json_payload():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return {}
    return {_snake_case(key): value for key, value in payload.items()}


def _api_form(form_cls, obj=None, payload=None):
    """Build ``form_cls`` from a JSON body, CSRF off.

    Fields the payload leaves out take the stored values of ``obj`` (so PUT
    behaves as a partial update), or the form defaults on create.
    """
    merged = {}
    seeded = form_cls(formdata=None, obj=obj, meta={'csrf': False})
    for field in seeded:
        if field.type in ('SubmitField', 'FileField', 'CSRFTokenField'):
            continue
        merged[field.name] = field.data
    merged.update(_json_payload() if payload is None else payload)

    formdata = MultiDict()
    for key, value in merged.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            value = '\n'.join(str(item) for item in value)
        formdata[key] = value if isinstance(value, str) else str(value)
    form = form_cls(formdata=formdata, meta={'csrf': False})
    if obj is not None:
        form.editing_id = obj.id
    return form


def _upload_form(form_cls):
    fields = MultiDict([(_snake_case(key), value) for key, value in request.form.items(multi=True)])
    return form_cls(formdata=CombinedMultiDict([request.files, fields]), meta={'csrf': False})


def _validation_error(form):
    return jsonify(message='Invalid data', errors=form.errors), 400


def _split_lines(text):
    return [line.strip() for line in (text or '').splitlines() if line.strip()]


class UploadRejected(ValueError):
    pass


def save_upload(storage, field_name, allowed):
    """Store an uploaded file under UPLOAD_FOLDER and return (stored name, public path)."""
    original = secure_filename(storage.filename or '')
    ext = os.path.splitext(original)[1].lower()
    if not original or ext.lstrip('.') not in allowed:
        raise UploadRejected('File type not allowed')
    stored = f'{field_name}-{_now_ms()}-{random.randint(0, 10 ** 9)}{ext}'
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
    storage.save(os.path.join(app.config['UPLOAD_FOLDER'], stored))
    return stored, f'/uploads/{stored}'


def remove_upload(public_path):
    if not public_path:
        return
    path = os.path.join(app.config['UPLOAD_FOLDER'], os.path.basename(public_path))
    try:
        os.remove(path)
    except OSError as exc:
        app.logger.warning('Could not remove upload %s: %s', path, exc)


def delete_video_record(video):
    paths = (video.file_path, video.thumbnail_path)
    db.session.delete(video)
    db.session.commit()
    for path in paths:
        remove_upload(path)


def delete_photo_record(photo):
    path = photo.file_path
    PhotoAlbumPhoto.query.filter_by(photo_id=photo.id).delete()
    PhotoAlbum.query.filter_by(cover_photo_id=photo.id).update({'cover_photo_id': None})
    db.session.delete(photo)
    db.session.commit()
    remove_upload(path)


def generate_complaint_number():
    year = utcnow().year
    number = f'CID{year}{str(_now_ms())[-6:]}'
    while Complaint.query.filter_by(complaint_number=number).first():
        number = f'CID{year}{random.randint(0, 999999):06d}'
    return number


def _fill_page(page, form):
    page.title = form.title.data
    page.slug = form.slug.data
    page.content = form.content.data
    page.meta_title = form.meta_title.data
    page.meta_description = form.meta_description.data
    page.is_published = form.is_published.data


def _fill_news(news, form):
    news.title = form.title.data
    news.content = form.content.data
    news.excerpt = form.excerpt.data
    news.featured_image = form.featured_image.data
    news.category = form.category.data
    news.is_published = form.is_published.data
    news.is_pinned = form.is_pinned.data
    if news.is_published and news.published_at is None:
        news.published_at = utcnow()


def _fill_video(video, form):
    video.title = form.title.data
    video.description = form.description.data
    video.category = form.category.data
    video.duration = form.duration.data
    video.is_published = form.is_published.data


def _fill_photo(photo, form):
    photo.title = form.title.data
    photo.description = form.description.data
    photo.category = form.category.data
    photo.is_published = form.is_published.data


def _fill_complaint(complaint, form):
    complaint.type = form.type.data
    complaint.subject = form.subject.data
    complaint.description = form.description.data
    complaint.complainant_name = form.complainant_name.data
    complaint.complainant_email = form.complainant_email.data
    complaint.complainant_phone = form.complainant_phone.data
    complaint.complainant_address = form.complainant_address.data


def _fill_wing(wing, form):
    wing.title = form.title.data
    wing.slug = form.slug.data
    wing.description = form.description.data
    wing.features = _split_lines(form.features.data)
    wing.contact_email = form.contact_email.data
    wing.contact_phone = form.contact_phone.data
    wing.display_order = form.display_order.data or 0
    wing.is_active = form.is_active.data


def _fill_officer(officer, form):
    officer.name = form.name.data
    officer.position = form.position.data
    officer.description = form.description.data
    officer.location = form.location.data
    officer.phone = form.phone.data
    officer.email = form.email.data
    officer.photo_url = form.photo_url.data
    officer.display_order = form.display_order.data or 0
    officer.is_active = form.is_active.data


def _fill_alert(alert, form):
    alert.title = form.title.data
    alert.slug = form.slug.data
    alert.description = form.description.data
    alert.content = form.content.data
    alert.category = form.category.data
    alert.icon_name = form.icon_name.data
    alert.priority = form.priority.data or 0
    alert.is_active = form.is_active.data


def _flash_form_errors(form):
    for field, errors in form.errors.items():
        for error in errors:
            flash(f"Error in {getattr(form, field).label.text}: {error}", 'danger')


# --- Session tracking ---
SESSION_EXEMPT_ENDPOINTS = {'static', 'uploaded_file', 'session_status', 'api_logout', 'admin_logout'}


def start_session_tracking():
    session['session_id'] = secrets.token_hex(16)
    session['last_activity'] = _now_ms()


def session_time_remaining():
    """Milliseconds left before the session times out, negative once it has, None without one."""
    last_activity = session.get('last_activity')
    if last_activity is None:
        return None
    return app.config['SESSION_TIMEOUT_SECONDS'] * 1000 - (_now_ms() - last_activity)


def end_session():
    logout_user()
    session.clear()


@app.before_request
def enforce_session_timeout():
    if request.endpoint in SESSION_EXEMPT_ENDPOINTS or not current_user.is_authenticated:
        return None
    remaining = session_time_remaining()
    if remaining is not None and remaining < 0:
        log_security_event('SESSION_INACTIVITY_TIMEOUT', {'session_id': session.get('session_id'),
                                                          'username': current_user.username}, 'MEDIUM', 'WARNING')
        end_session()
        if _wants_json():
            return jsonify(message='Session expired due to inactivity', code='SESSION_TIMEOUT'), 401
        flash('Your session has expired due to inactivity. Please log in again.', 'warning')
        return redirect(url_for('admin_login'))
    if remaining is None:
        start_session_tracking()
    else:
        session['last_activity'] = _now_ms()
    return None


@app.context_processor
def inject_navigation():
    menu = MenuItem.query.filter_by(is_active=True, parent_id=None).order_by(MenuItem.sort_order).all()
    return {'menu_items': menu, 'current_year': utcnow().year, 'admin_roles': ADMIN_ROLES, 'csrf_token': generate_csrf}


# --- Error Handlers ---
@app.errorhandler(404)
def not_found(error):
    if _wants_json():
        return jsonify(message='Not found'), 404
    return render_template('error.html', title='Not Found', code=404,
                           message='The page you requested could not be found.'), 404


@app.errorhandler(413)
def too_large(error):
    if _wants_json():
        return jsonify(message='File too large'), 413
    flash('The uploaded file is too large.', 'danger')
    return redirect(request.referrer or url_for('admin_dashboard'))


@app.errorhandler(429)
def rate_limited(error):
    if _wants_json():
        return jsonify(message='Too many requests, please try again later'), 429
    return render_template('error.html', title='Too Many Requests', code=429,
                           message='Too many requests, please try again later.'), 429


@app.errorhandler(500)
def internal_error(error):
    db.session.rollback()
    app.logger.error('Unhandled error on %s %s: %s', request.method, request.path,
                     getattr(error, 'original_exception', error))
    if _wants_json():
        return jsonify(message='Internal server error'), 500
    return render_template('error.html', title='Server Error', code=500,
                           message='Something went wrong. Please try again later.'), 500


# --- Auth Routes ---
def _authenticate(username, password):
    """Check credentials with lockout; returns (user, error message, status)."""
    if login_attempts.is_locked(username):
        log_security_event('LOGIN_ATTEMPT_ACCOUNT_LOCKED', {'username': username}, 'HIGH', 'FAILURE')
        return None, 'Account temporarily locked due to too many failed attempts. Please try again later.', 429
    user = User.query.filter_by(username=username).first()
    if user is None or not user.is_active or not user.check_password(password):
        reason = 'User not found' if user is None else ('Account inactive' if not user.is_active else 'Invalid password')
        login_attempts.record_failure(username)
        log_security_event('LOGIN_FAILED', {'username': username, 'reason': reason}, 'HIGH', 'FAILURE')
        return None, 'Invalid username or password', 401
    login_attempts.record_success(username)
    return user, None, 200


def _begin_login(user):
    session.clear()
    login_user(user)
    start_session_tracking()
    log_security_event('LOGIN_SUCCESS', {'username': user.username, 'role': user.role}, 'LOW', 'SUCCESS')


@app.route('/api/login', methods=['POST'])
@app.route('/api/auth/login', methods=['POST'])
@limiter.limit('10 per minute')
def api_login():
    payload = _json_payload()
    username = str(payload.get('username') or '').strip()
    password = str(payload.get('password') or '')
    if not username or not password:
        log_security_event('LOGIN_ATTEMPT_MISSING_CREDENTIALS', {'username': username})
        return jsonify(message='Username and password are required'), 400
    user, error, status = _authenticate(username, password)
    if user is None:
        return jsonify(message=error), status
    _begin_login(user)
    return jsonify(user.to_dict())


@app.route('/api/logout', methods=['GET', 'POST'])
def api_logout():
    username = current_user.username if current_user.is_authenticated else 'unknown'
    session_id = session.get('session_id')
    log_security_event('LOGOUT_ATTEMPT', {'username': username, 'session_id': session_id})
    end_session()
    log_security_event('LOGOUT_SUCCESS', {'username': username, 'session_destroyed': True}, 'LOW', 'SUCCESS')
    accept = request.accept_mimetypes
    if request.method == 'GET' and not (accept.accept_json and not accept.accept_html):
        return redirect(url_for('home'))
    return jsonify(message='Logged out successfully', sessionDestroyed=True, timestamp=utcnow().isoformat())


@app.route('/api/auth/user')
@login_required
def api_current_user():
    return jsonify(current_user.to_dict())


@app.route('/api/auth/session-status')
def session_status():
    if not current_user.is_authenticated or 'session_id' not in session:
        return jsonify(valid=False, message='No active session'), 401
    remaining = session_time_remaining()
    if remaining is None or remaining < 0:
        log_security_event('SESSION_INACTIVITY_TIMEOUT', {'session_id': session.get('session_id')},
                           'MEDIUM', 'WARNING')
        end_session()
        return jsonify(valid=False, message='Session expired due to inactivity', code='SESSION_TIMEOUT'), 401
    return jsonify(
        valid=True,
        timeRemaining=ceil(remaining / 1000),
        isWarning=remaining <= app.config['SESSION_WARNING_SECONDS'] * 1000,
        lastActivity=session['last_activity'],
        sessionId=session['session_id'],
    )


@app.route('/api/auth/extend-session', methods=['POST'])
def extend_session():
    if not current_user.is_authenticated or 'session_id' not in session:
        return jsonify(success=False, message='No active session'), 401
    session['last_activity'] = _now_ms()
    log_security_event('SESSION_EXTENDED', {'session_id': session['session_id']}, 'LOW', 'SUCCESS')
    return jsonify(success=True, message='Session extended', timeRemaining=app.config['SESSION_TIMEOUT_SECONDS'])


@app.route('/admin/login', methods=['GET', 'POST'])
@limiter.limit('10 per minute', methods=['POST'])
def admin_login():
    if current_user.is_authenticated and current_user.role in ADMIN_ROLES:
        return redirect(url_for('admin_dashboard'))
    form = LoginForm()
    if form.validate_on_submit():
        user, error, status = _authenticate(form.username.data.strip(), form.password.data)
        if user is not None:
            _begin_login(user)
            next_page = request.args.get('next')
            if next_page and next_page.startswith('/') and not next_page.startswith('//'):
                return redirect(next_page)
            return redirect(url_for('admin_dashboard'))
        flash(error, 'danger')
    elif request.method == 'POST':
        flash('Username and password are required.', 'danger')
    return render_template('admin/login.html', title='Admin Login', form=form)


@app.route('/admin/logout')
def admin_logout():
    if current_user.is_authenticated:
        log_security_event('LOGOUT_SUCCESS', {'username': current_user.username}, 'LOW', 'SUCCESS')
    end_session()
    flash('You have been logged out.', 'info')
    return redirect(url_for('admin_login'))


# --- Public Routes ---
@app.route('/')
def home():
    news = (News.query.filter_by(is_published=True)
            .order_by(News.is_pinned.desc(), News.created_at.desc()).limit(5).all())
    alerts = Alert.query.filter_by(is_active=True).order_by(Alert.priority.desc()).limit(4).all()
    wings = Wing.query.filter_by(is_active=True).order_by(Wing.display_order).all()
    return render_template('home.html', title='Home', news=news, alerts=alerts, wings=wings)


@app.route('/pages/<slug>')
def view_page(slug):
    page = Page.query.filter_by(slug=slug, is_published=True).first_or_404()
    return render_template('page.html', title=page.meta_title or page.title, page=page)


@app.route('/news')
def news_list():
    items = News.query.filter_by(is_published=True).order_by(News.is_pinned.desc(), News.created_at.desc()).all()
    return render_template('news_list.html', title='News', news=items)


@app.route('/news/<int:id>')
def news_detail(id):
    item = News.query.filter_by(id=id, is_published=True).first_or_404()
    return render_template('news_detail.html', title=item.title, item=item)


@app.route('/photos')
def photo_gallery():
    category = request.args.get('category')
    query = Photo.query.filter_by(is_published=True)
    if category:
        query = query.filter_by(category=category)
    photos = query.order_by(Photo.created_at.desc()).all()
    return render_template('photos.html', title='Photo Gallery', photos=photos, categories=PHOTO_CATEGORIES,
                           selected=category)


@app.route('/videos')
def video_gallery():
    videos = Video.query.filter_by(is_published=True).order_by(Video.created_at.desc()).all()
    return render_template('videos.html', title='Video Gallery', videos=videos)


@app.route('/wings')
def wings():
    wings = Wing.query.filter_by(is_active=True).order_by(Wing.display_order).all()
    return render_template('wings.html', title='Specialized Wings', wings=wings)


@app.route('/wings/<slug>')
def wing_detail(slug):
    wing = Wing.query.filter_by(slug=slug, is_active=True).first_or_404()
    return render_template('wing_detail.html', title=wing.title, wing=wing)


@app.route('/officers')
def senior_officers():
    officers = SeniorOfficer.query.filter_by(is_active=True).order_by(SeniorOfficer.display_order).all()
    return render_template('officers.html', title='Senior Officers', officers=officers)


@app.route('/alerts')
def alerts():
    alerts = Alert.query.filter_by(is_active=True).order_by(Alert.priority.desc(), Alert.created_at.desc()).all()
    return render_template('alerts.html', title='Alerts', alerts=alerts)


@app.route('/alerts/<slug>')
def alert_detail(slug):
    alert = Alert.query.filter_by(slug=slug, is_active=True).first_or_404()
    return render_template('alert_detail.html', title=alert.title, alert=alert)


@app.route('/complaints/lodge', methods=['GET', 'POST'])
@limiter.limit('5 per minute', methods=['POST'])
def lodge_complaint():
    form = ComplaintForm()
    if form.validate_on_submit():
        complaint = Complaint(complaint_number=generate_complaint_number())
        _fill_complaint(complaint, form)
        db.session.add(complaint)
        db.session.commit()
        log_security_event('COMPLAINT_SUBMITTED', {'complaint_number': complaint.complaint_number}, 'LOW', 'SUCCESS')
        flash(f'Your complaint has been registered. Complaint number: {complaint.complaint_number}', 'success')
        return redirect(url_for('complaint_status', number=complaint.complaint_number))
    return render_template('lodge_complaint.html', title='Lodge Complaint', form=form)


@app.route('/complaints/status', methods=['GET', 'POST'])
def complaint_status():
    form = ComplaintLookupForm()
    complaint = None
    number = request.args.get('number')
    if form.validate_on_submit():
        number = form.complaint_number.data.strip()
    if number:
        complaint = Complaint.query.filter_by(complaint_number=number).first()
        if complaint is None:
            flash('No complaint found with that number.', 'warning')
    return render_template('complaint_status.html', title='Complaint Status', form=form, complaint=complaint)


@app.route('/uploads/<path:filename>')
def uploaded_file(filename):
    return send_from_directory(app.config['UPLOAD_FOLDER'], filename)


# --- Public API ---
@app.route('/api/pages')
def api_pages():
    pages = Page.query.filter_by(is_published=True).order_by(Page.updated_at.desc()).all()
    return jsonify([page.to_dict() for page in pages])


@app.route('/api/pages/slug/<slug>')
def api_page_by_slug(slug):
    page = Page.query.filter_by(slug=slug, is_published=True).first()
    if page is None:
        return jsonify(message='Page not found'), 404
    return jsonify(page.to_dict())


@app.route('/api/videos')
def api_videos():
    videos = Video.query.filter_by(is_published=True).order_by(Video.created_at.desc()).all()
    return jsonify([video.to_dict() for video in videos])


@app.route('/api/photos')
def api_photos():
    query = Photo.query.filter_by(is_published=True)
    category = request.args.get('category')
    if category:
        query = query.filter_by(category=category)
    return jsonify([photo.to_dict() for photo in query.order_by(Photo.created_at.desc()).all()])


@app.route('/api/photo-albums')
def api_photo_albums():
    albums = PhotoAlbum.query.filter_by(is_published=True).order_by(PhotoAlbum.created_at.desc()).all()
    return jsonify([album.to_dict() for album in albums])


@app.route('/api/news')
def api_news():
    items = (News.query.filter_by(is_published=True)
             .order_by(News.is_pinned.desc(), News.created_at.desc()).all())
    return jsonify([item.to_dict() for item in items])


@app.route('/api/wings')
def api_wings():
    wings = Wing.query.filter_by(is_active=True).order_by(Wing.display_order).all()
    return jsonify([wing.to_dict() for wing in wings])


@app.route('/api/senior-officers')
def api_senior_officers():
    officers = SeniorOfficer.query.filter_by(is_active=True).order_by(SeniorOfficer.display_order).all()
    return jsonify([officer.to_dict() for officer in officers])


@app.route('/api/alerts')
def api_alerts():
    alerts = Alert.query.filter_by(is_active=True).order_by(Alert.priority.desc(), Alert.created_at.desc()).all()
    return jsonify([alert.to_dict() for alert in alerts])


@app.route('/api/menu')
def api_menu():
    items = MenuItem.query.filter_by(is_active=True).order_by(MenuItem.sort_order).all()
    return jsonify([item.to_dict() for item in items])


@app.route('/api/complaints', methods=['POST'])
@limiter.limit('5 per minute')
def api_create_complaint():
    form = _api_form(ComplaintForm)
    if not form.validate():
        return _validation_error(form)
    complaint = Complaint(complaint_number=generate_complaint_number())
    _fill_complaint(complaint, form)
    db.session.add(complaint)
    db.session.commit()
    log_security_event('COMPLAINT_SUBMITTED', {'complaint_number': complaint.complaint_number}, 'LOW', 'SUCCESS')
    return jsonify(complaint.to_dict()), 201


@app.route('/api/complaints/number/<complaint_number>')
def api_complaint_by_number(complaint_number):
    complaint = Complaint.query.filter_by(complaint_number=complaint_number).first()
    if complaint is None:
        return jsonify(message='Complaint not found'), 404
    return jsonify(complaint.to_public_dict())


# --- Admin API ---
@app.route('/api/admin/pages')
@login_required
@admin_required
def api_admin_pages():
    return jsonify([page.to_dict() for page in Page.query.order_by(Page.updated_at.desc()).all()])


@app.route('/api/admin/pages', methods=['POST'])
@login_required
@admin_required
def api_create_page():
    form = _api_form(PageForm)
    if not form.validate():
        return _validation_error(form)
    page = Page(author_id=current_user.id)
    _fill_page(page, form)
    db.session.add(page)
    db.session.commit()
    app.logger.info('Page %s created by %s', page.slug, current_user.username)
    return jsonify(page.to_dict()), 201


@app.route('/api/admin/pages/<int:id>', methods=['PUT'])
@login_required
@admin_required
def api_update_page(id):
    page = db.get_or_404(Page, id)
    form = _api_form(PageForm, obj=page)
    if not form.validate():
        return _validation_error(form)
    _fill_page(page, form)
    db.session.commit()
    return jsonify(page.to_dict())


@app.route('/api/admin/pages/<int:id>', methods=['DELETE'])
@login_required
@admin_required
def api_delete_page(id):
    page = db.get_or_404(Page, id)
    db.session.delete(page)
    db.session.commit()
    return jsonify(message='Page deleted successfully')


@app.route('/api/admin/news')
@login_required
@admin_required
def api_admin_news():
    return jsonify([item.to_dict() for item in News.query.order_by(News.created_at.desc()).all()])


@app.route('/api/admin/news', methods=['POST'])
@login_required
@admin_required
def api_create_news():
    form = _api_form(NewsForm)
    if not form.validate():
        return _validation_error(form)
    news = News(author_id=current_user.id)
    _fill_news(news, form)
    db.session.add(news)
    db.session.commit()
    return jsonify(news.to_dict()), 201


@app.route('/api/admin/news/<int:id>', methods=['PUT'])
@login_required
@admin_required
def api_update_news(id):
    news = db.get_or_404(News, id)
    form = _api_form(NewsForm, obj=news)
    if not form.validate():
        return _validation_error(form)
    _fill_news(news, form)
    db.session.commit()
    return jsonify(news.to_dict())


@app.route('/api/admin/news/<int:id>', methods=['DELETE'])
@login_required
@admin_required
def api_delete_news(id):
    news = db.get_or_404(News, id)
    db.session.delete(news)
    db.session.commit()
    return jsonify(message='News deleted successfully')


@app.route('/api/admin/videos')
@login_required
@admin_required
def api_admin_videos():
    return jsonify([video.to_dict() for video in Video.query.order_by(Video.created_at.desc()).all()])


@app.route('/api/admin/videos', methods=['POST'])
@login_required
@admin_required
def api_upload_video():
    form = _upload_form(VideoUploadForm)
    if not form.validate():
        return _validation_error(form)
    try:
        stored, path = save_upload(form.video.data, 'video', VIDEO_EXTENSIONS)
        thumbnail = save_upload(form.thumbnail.data, 'thumbnail', IMAGE_EXTENSIONS)[1] if form.thumbnail.data else None
    except UploadRejected as exc:
        return jsonify(message=str(exc)), 400
    video = Video(file_name=stored, file_path=path, thumbnail_path=thumbnail, uploaded_by=current_user.id)
    _fill_video(video, form)
    db.session.add(video)
    db.session.commit()
    return jsonify(video.to_dict()), 201


@app.route('/api/admin/videos/<int:id>', methods=['PUT'])
@login_required
@admin_required
def api_update_video(id):
    video = db.get_or_404(Video, id)
    form = _api_form(VideoForm, obj=video)
    if not form.validate():
        return _validation_error(form)
    _fill_video(video, form)
    db.session.commit()
    return jsonify(video.to_dict())


@app.route('/api/admin/videos/<int:id>', methods=['DELETE'])
@login_required
@admin_required
def api_delete_video(id):
    video = db.get_or_404(Video, id)
    delete_video_record(video)
    return jsonify(message='Video deleted successfully')


@app.route('/api/admin/photos')
@login_required
@admin_required
def api_admin_photos():
    return jsonify([photo.to_dict() for photo in Photo.query.order_by(Photo.created_at.desc()).all()])


@app.route('/api/admin/photos', methods=['POST'])
@login_required
@admin_required
def api_upload_photo():
    form = _upload_form(PhotoUploadForm)
    if not form.validate():
        return _validation_error(form)
    try:
        stored, path = save_upload(form.photo.data, 'photo', IMAGE_EXTENSIONS)
    except UploadRejected as exc:
        return jsonify(message=str(exc)), 400
    photo = Photo(file_name=stored, file_path=path, uploaded_by=current_user.id)
    _fill_photo(photo, form)
    db.session.add(photo)
    db.session.commit()
    return jsonify(photo.to_dict()), 201


@app.route('/api/admin/photos/<int:id>', methods=['PUT'])
@login_required
@admin_required
def api_update_photo(id):
    photo = db.get_or_404(Photo, id)
    form = _api_form(PhotoForm, obj=photo)
    if not form.validate():
        return _validation_error(form)
    _fill_photo(photo, form)
    db.session.commit()
    return jsonify(photo.to_dict())


@app.route('/api/admin/photos/<int:id>', methods=['DELETE'])
@login_required
@admin_required
def api_delete_photo(id):
    photo = db.get_or_404(Photo, id)
    delete_photo_record(photo)
    return jsonify(message='Photo deleted successfully')


@app.route('/api/admin/photo-albums', methods=['POST'])
@login_required
@admin_required
def api_create_photo_album():
    form = _api_form(PhotoAlbumForm)
    if not form.validate():
        return _validation_error(form)
    photo_ids = [int(token) for token in (form.photo_ids.data or '').split()]
    album = PhotoAlbum(name=form.name.data, description=form.description.data,
                       is_published=form.is_published.data, created_by=current_user.id,
                       cover_photo_id=photo_ids[0] if photo_ids else None)
    album.entries = [PhotoAlbumPhoto(photo_id=photo_id, sort_order=index) for index, photo_id in enumerate(photo_ids)]
    db.session.add(album)
    db.session.commit()
    return jsonify(album.to_dict()), 201


@app.route('/api/admin/photo-albums/<int:id>', methods=['DELETE'])
@login_required
@admin_required
def api_delete_photo_album(id):
    album = db.get_or_404(PhotoAlbum, id)
    db.session.delete(album)
    db.session.commit()
    return jsonify(message='Album deleted successfully')


@app.route('/api/admin/upload-image', methods=['POST'])
@login_required
@admin_required
def api_upload_image():
    form = _upload_form(ImageUploadForm)
    if not form.validate():
        return _validation_error(form)
    try:
        stored, path = save_upload(form.image.data, 'image', IMAGE_EXTENSIONS)
    except UploadRejected as exc:
        return jsonify(message=str(exc)), 400
    app.logger.info('Editor image %s uploaded by %s', stored, current_user.username)
    return jsonify(url=path), 201


@app.route('/api/admin/complaints')
@login_required
@admin_required
def api_admin_complaints():
    query = Complaint.query
    status = request.args.get('status')
    if status:
        query = query.filter_by(status=status)
    return jsonify([complaint.to_dict() for complaint in query.order_by(Complaint.created_at.desc()).all()])


@app.route('/api/admin/complaints/<int:id>', methods=['PUT'])
@login_required
@admin_required
def api_update_complaint(id):
    complaint = db.get_or_404(Complaint, id)
    payload = _json_payload()
    form = _api_form(ComplaintUpdateForm, obj=complaint, payload=payload)
    if not form.validate():
        return _validation_error(form)
    complaint.status = form.status.data
    complaint.priority = form.priority.data
    complaint.notes = form.notes.data
    # unassigned updates are taken by the acting officer
    complaint.assigned_to = form.assigned_to.data if payload.get('assigned_to') else current_user.id
    db.session.commit()
    log_security_event('COMPLAINT_UPDATED', {'complaint_number': complaint.complaint_number,
                                             'status': complaint.status, 'by': current_user.username})
    return jsonify(complaint.to_dict())


@app.route('/api/admin/wings')
@login_required
@admin_required
def api_admin_wings():
    return jsonify([wing.to_dict() for wing in Wing.query.order_by(Wing.display_order).all()])


@app.route('/api/admin/wings', methods=['POST'])
@login_required
@admin_required
def api_create_wing():
    form = _api_form(WingForm)
    if not form.validate():
        return _validation_error(form)
    wing = Wing()
    _fill_wing(wing, form)
    db.session.add(wing)
    db.session.commit()
    return jsonify(wing.to_dict()), 201


@app.route('/api/admin/wings/<int:id>', methods=['PUT'])
@login_required
@admin_required
def api_update_wing(id):
    wing = db.get_or_404(Wing, id)
    form = _api_form(WingForm, obj=wing)
    if not form.validate():
        return _validation_error(form)
    _fill_wing(wing, form)
    db.session.commit()
    return jsonify(wing.to_dict())


@app.route('/api/admin/wings/<int:id>', methods=['DELETE'])
@login_required
@admin_required
def api_delete_wing(id):
    wing = db.get_or_404(Wing, id)
    db.session.delete(wing)
    db.session.commit()
    return jsonify(message='Wing deleted successfully')


@app.route('/api/admin/senior-officers')
@login_required
@admin_required
def api_admin_senior_officers():
    officers = SeniorOfficer.query.order_by(SeniorOfficer.display_order).all()
    return jsonify([officer.to_dict() for officer in officers])


@app.route('/api/admin/senior-officers', methods=['POST'])
@login_required
@admin_required
def api_create_senior_officer():
    form = _api_form(SeniorOfficerForm)
    if not form.validate():
        return _validation_error(form)
    officer = SeniorOfficer()
    _fill_officer(officer, form)
    db.session.add(officer)
    db.session.commit()
    return jsonify(officer.to_dict()), 201


@app.route('/api/admin/senior-officers/<int:id>', methods=['PUT'])
@login_required
@admin_required
def api_update_senior_officer(id):
    officer = db.get_or_404(SeniorOfficer, id)
    form = _api_form(SeniorOfficerForm, obj=officer)
    if not form.validate():
        return _validation_error(form)
    _fill_officer(officer, form)
    db.session.commit()
    return jsonify(officer.to_dict())


@app.route('/api/admin/senior-officers/<int:id>', methods=['DELETE'])
@login_required
@admin_required
def api_delete_senior_officer(id):
    officer = db.get_or_404(SeniorOfficer, id)
    db.session.delete(officer)
    db.session.commit()
    return jsonify(message='Officer deleted successfully')


@app.route('/api/admin/alerts')
@login_required
@admin_required
def api_admin_alerts():
    return jsonify([alert.to_dict() for alert in Alert.query.order_by(Alert.priority.desc()).all()])


@app.route('/api/admin/alerts', methods=['POST'])
@login_required
@admin_required
def api_create_alert():
    form = _api_form(AlertForm)
    if not form.validate():
        return _validation_error(form)
    alert = Alert()
    _fill_alert(alert, form)
    db.session.add(alert)
    db.session.commit()
    return jsonify(alert.to_dict()), 201


@app.route('/api/admin/alerts/<int:id>', methods=['PUT'])
@login_required
@admin_required
def api_update_alert(id):
    alert = db.get_or_404(Alert, id)
    form = _api_form(AlertForm, obj=alert)
    if not form.validate():
        return _validation_error(form)
    _fill_alert(alert, form)
    db.session.commit()
    return jsonify(alert.to_dict())


@app.route('/api/admin/alerts/<int:id>', methods=['DELETE'])
@login_required
@admin_required
def api_delete_alert(id):
    alert = db.get_or_404(Alert, id)
    db.session.delete(alert)
    db.session.commit()
    return jsonify(message='Alert deleted successfully')


# --- Admin Screens ---
@app.route('/admin')
@app.route('/admin/dashboard')
@login_required
@admin_required
def admin_dashboard():
    total_complaints = Complaint.query.count()
    pending_complaints = Complaint.query.filter_by(status='pending').count()
    resolved_complaints = Complaint.query.filter(Complaint.status.in_(['resolved', 'closed'])).count()
    recent_complaints = Complaint.query.order_by(Complaint.created_at.desc()).limit(5).all()
    return render_template('admin/dashboard.html', title='Dashboard',
                           total_pages=Page.query.count(),
                           total_news=News.query.count(),
                           total_photos=Photo.query.count(),
                           total_videos=Video.query.count(),
                           total_wings=Wing.query.count(),
                           total_officers=SeniorOfficer.query.count(),
                           total_alerts=Alert.query.count(),
                           total_complaints=total_complaints,
                           pending_complaints=pending_complaints,
                           resolved_complaints=resolved_complaints,
                           recent_complaints=recent_complaints)


@app.route('/admin/pages')
@login_required
@admin_required
def admin_pages():
    pages = Page.query.order_by(Page.updated_at.desc()).all()
    return render_template('admin/pages.html', title='Admin - Pages', pages=pages)


@app.route('/admin/page/add', methods=['GET', 'POST'])
@login_required
@admin_required
def add_page():
    form = PageForm()
    if form.validate_on_submit():
        page = Page(author_id=current_user.id)
        _fill_page(page, form)
        db.session.add(page)
        db.session.commit()
        flash('Page has been added!', 'success')
        return redirect(url_for('admin_pages'))
    return render_template('admin/form.html', title='Add Page', form=form, uses_editor=True)


@app.route('/admin/page/edit/<int:id>', methods=['GET', 'POST'])
@login_required
@admin_required
def edit_page(id):
    page = db.get_or_404(Page, id)
    form = PageForm(obj=page)
    form.editing_id = page.id
    if form.validate_on_submit():
        _fill_page(page, form)
        db.session.commit()
        flash('Page has been updated!', 'success')
        return redirect(url_for('admin_pages'))
    return render_template('admin/form.html', title='Edit Page', form=form, uses_editor=True)


@app.route('/admin/page/delete/<int:id>', methods=['POST'])
@login_required
@admin_required
def delete_page(id):
    page = db.get_or_404(Page, id)
    db.session.delete(page)
    db.session.commit()
    flash('Page has been deleted!', 'success')
    return redirect(url_for('admin_pages'))


@app.route('/admin/news')
@login_required
@admin_required
def admin_news():
    items = News.query.order_by(News.created_at.desc()).all()
    return render_template('admin/news.html', title='Admin - News', news=items)


@app.route('/admin/news/add', methods=['GET', 'POST'])
@login_required
@admin_required
def add_news():
    form = NewsForm()
    if form.validate_on_submit():
        news = News(author_id=current_user.id)
        _fill_news(news, form)
        db.session.add(news)
        db.session.commit()
        flash('News has been added!', 'success')
        return redirect(url_for('admin_news'))
    return render_template('admin/form.html', title='Add News', form=form, uses_editor=True)


@app.route('/admin/news/edit/<int:id>', methods=['GET', 'POST'])
@login_required
@admin_required
def edit_news(id):
    news = db.get_or_404(News, id)
    form = NewsForm(obj=news)
    if form.validate_on_submit():
        _fill_news(news, form)
        db.session.commit()
        flash('News has been updated!', 'success')
        return redirect(url_for('admin_news'))
    return render_template('admin/form.html', title='Edit News', form=form, uses_editor=True)


@app.route('/admin/news/delete/<int:id>', methods=['POST'])
@login_required
@admin_required
def delete_news(id):
    news = db.get_or_404(News, id)
    db.session.delete(news)
    db.session.commit()
    flash('News has been deleted!', 'success')
    return redirect(url_for('admin_news'))


@app.route('/admin/photos')
@login_required
@admin_required
def admin_photos():
    photos = Photo.query.order_by(Photo.created_at.desc()).all()
    return render_template('admin/photos.html', title='Admin - Photos', photos=photos)


@app.route('/admin/photo/upload', methods=['GET', 'POST'])
@login_required
@admin_required
def upload_photo():
    form = PhotoUploadForm()
    if form.validate_on_submit():
        try:
            stored, path = save_upload(form.photo.data, 'photo', IMAGE_EXTENSIONS)
        except UploadRejected as exc:
            flash(str(exc), 'danger')
            return redirect(url_for('upload_photo'))
        photo = Photo(file_name=stored, file_path=path, uploaded_by=current_user.id)
        _fill_photo(photo, form)
        db.session.add(photo)
        db.session.commit()
        flash('Photo has been uploaded!', 'success')
        return redirect(url_for('admin_photos'))
    return render_template('admin/form.html', title='Upload Photo', form=form, multipart=True)


@app.route('/admin/photo/edit/<int:id>', methods=['GET', 'POST'])
@login_required
@admin_required
def edit_photo(id):
    photo = db.get_or_404(Photo, id)
    form = PhotoForm(obj=photo)
    if form.validate_on_submit():
        _fill_photo(photo, form)
        db.session.commit()
        flash('Photo has been updated!', 'success')
        return redirect(url_for('admin_photos'))
    return render_template('admin/form.html', title='Edit Photo', form=form)


@app.route('/admin/photo/delete/<int:id>', methods=['POST'])
@login_required
@admin_required
def delete_photo(id):
    photo = db.get_or_404(Photo, id)
    delete_photo_record(photo)
    flash('Photo has been deleted!', 'success')
    return redirect(url_for('admin_photos'))


@app.route('/admin/videos')
@login_required
@admin_required
def admin_videos():
    videos = Video.query.order_by(Video.created_at.desc()).all()
    return render_template('admin/videos.html', title='Admin - Videos', videos=videos)


@app.route('/admin/video/upload', methods=['GET', 'POST'])
@login_required
@admin_required
def upload_video():
    form = VideoUploadForm()
    if form.validate_on_submit():
        try:
            stored, path = save_upload(form.video.data, 'video', VIDEO_EXTENSIONS)
            thumbnail = (save_upload(form.thumbnail.data, 'thumbnail', IMAGE_EXTENSIONS)[1]
                         if form.thumbnail.data else None)
        except UploadRejected as exc:
            flash(str(exc), 'danger')
            return redirect(url_for('upload_video'))
        video = Video(file_name=stored, file_path=path, thumbnail_path=thumbnail, uploaded_by=current_user.id)
        _fill_video(video, form)
        db.session.add(video)
        db.session.commit()
        flash('Video has been uploaded!', 'success')
        return redirect(url_for('admin_videos'))
    return render_template('admin/form.html', title='Upload Video', form=form, multipart=True)


@app.route('/admin/video/edit/<int:id>', methods=['GET', 'POST'])
@login_required
@admin_required
def edit_video(id):
    video = db.get_or_404(Video, id)
    form = VideoForm(obj=video)
    if form.validate_on_submit():
        _fill_video(video, form)
        db.session.commit()
        flash('Video has been updated!', 'success')
        return redirect(url_for('admin_videos'))
    return render_template('admin/form.html', title='Edit Video', form=form)


@app.route('/admin/video/delete/<int:id>', methods=['POST'])
@login_required
@admin_required
def delete_video(id):
    video = db.get_or_404(Video, id)
    delete_video_record(video)
    flash('Video has been deleted!', 'success')
    return redirect(url_for('admin_videos'))


@app.route('/admin/wings')
@login_required
@admin_required
def admin_wings():
    wings = Wing.query.order_by(Wing.display_order).all()
    return render_template('admin/wings.html', title='Admin - Wings', wings=wings)


@app.route('/admin/wing/add', methods=['GET', 'POST'])
@login_required
@admin_required
def add_wing():
    form = WingForm()
    if form.validate_on_submit():
        wing = Wing()
        _fill_wing(wing, form)
        db.session.add(wing)
        db.session.commit()
        flash('Wing has been added!', 'success')
        return redirect(url_for('admin_wings'))
    return render_template('admin/form.html', title='Add Wing', form=form)


@app.route('/admin/wing/edit/<int:id>', methods=['GET', 'POST'])
@login_required
@admin_required
def edit_wing(id):
    wing = db.get_or_404(Wing, id)
    form = WingForm(obj=wing)
    form.editing_id = wing.id
    if form.validate_on_submit():
        _fill_wing(wing, form)
        db.session.commit()
        flash('Wing has been updated!', 'success')
        return redirect(url_for('admin_wings'))
    if request.method == 'GET':
        form.features.data = '\n'.join(wing.features or [])
    return render_template('admin/form.html', title='Edit Wing', form=form)


@app.route('/admin/wing/delete/<int:id>', methods=['POST'])
@login_required
@admin_required
def delete_wing(id):
    wing = db.get_or_404(Wing, id)
    db.session.delete(wing)
    db.session.commit()
    flash('Wing has been deleted!', 'success')
    return redirect(url_for('admin_wings'))


@app.route('/admin/officers')
@login_required
@admin_required
def admin_officers():
    officers = SeniorOfficer.query.order_by(SeniorOfficer.display_order).all()
    return render_template('admin/officers.html', title='Admin - Senior Officers', officers=officers)


@app.route('/admin/officer/add', methods=['GET', 'POST'])
@login_required
@admin_required
def add_officer():
    form = SeniorOfficerForm()
    if form.validate_on_submit():
        officer = SeniorOfficer()
        _fill_officer(officer, form)
        db.session.add(officer)
        db.session.commit()
        flash('Officer has been added!', 'success')
        return redirect(url_for('admin_officers'))
    return render_template('admin/form.html', title='Add Officer', form=form)


@app.route('/admin/officer/edit/<int:id>', methods=['GET', 'POST'])
@login_required
@admin_required
def edit_officer(id):
    officer = db.get_or_404(SeniorOfficer, id)
    form = SeniorOfficerForm(obj=officer)
    if form.validate_on_submit():
        _fill_officer(officer, form)
        db.session.commit()
        flash('Officer has been updated!', 'success')
        return redirect(url_for('admin_officers'))
    return render_template('admin/form.html', title='Edit Officer', form=form)


@app.route('/admin/officer/delete/<int:id>', methods=['POST'])
@login_required
@admin_required
def delete_officer(id):
    officer = db.get_or_404(SeniorOfficer, id)
    db.session.delete(officer)
    db.session.commit()
    flash('Officer has been deleted!', 'success')
    return redirect(url_for('admin_officers'))


@app.route('/admin/alerts')
@login_required
@admin_required
def admin_alerts():
    alerts = Alert.query.order_by(Alert.priority.desc()).all()
    return render_template('admin/alerts.html', title='Admin - Alerts', alerts=alerts)


@app.route('/admin/alert/add', methods=['GET', 'POST'])
@login_required
@admin_required
def add_alert():
    form = AlertForm()
    if form.validate_on_submit():
        alert = Alert()
        _fill_alert(alert, form)
        db.session.add(alert)
        db.session.commit()
        flash('Alert has been added!', 'success')
        return redirect(url_for('admin_alerts'))
    return render_template('admin/form.html', title='Add Alert', form=form)


@app.route('/admin/alert/edit/<int:id>', methods=['GET', 'POST'])
@login_required
@admin_required
def edit_alert(id):
    alert = db.get_or_404(Alert, id)
    form = AlertForm(obj=alert)
    form.editing_id = alert.id
    if form.validate_on_submit():
        _fill_alert(alert, form)
        db.session.commit()
        flash('Alert has been updated!', 'success')
        return redirect(url_for('admin_alerts'))
    return render_template('admin/form.html', title='Edit Alert', form=form)


@app.route('/admin/alert/delete/<int:id>', methods=['POST'])
@login_required
@admin_required
def delete_alert(id):
    alert = db.get_or_404(Alert, id)
    db.session.delete(alert)
    db.session.commit()
    flash('Alert has been deleted!', 'success')
    return redirect(url_for('admin_alerts'))


@app.route('/admin/complaints')
@login_required
@admin_required
def admin_complaints():
    status = request.args.get('status')
    query = Complaint.query
    if status:
        query = query.filter_by(status=status)
    complaints = query.order_by(Complaint.created_at.desc()).all()
    return render_template('admin/complaints.html', title='Admin - Complaints', complaints=complaints,
                           statuses=COMPLAINT_STATUSES, priorities=PRIORITIES, selected=status)


@app.route('/admin/complaint/update/<int:id>', methods=['POST'])
@login_required
@admin_required
def update_complaint(id):
    complaint = db.get_or_404(Complaint, id)
    form = ComplaintUpdateForm(obj=complaint)
    if form.validate_on_submit():
        complaint.status = form.status.data
        complaint.priority = form.priority.data
        complaint.notes = form.notes.data
        complaint.assigned_to = form.assigned_to.data or current_user.id
        db.session.commit()
        flash(f'Complaint {complaint.complaint_number} updated to {complaint.status}', 'success')
    else:
        _flash_form_errors(form)
    return redirect(url_for('admin_complaints'))


# --- CLI ---
@app.cli.command('init-db')
def init_db_command():
    """Create the tables and seed the default navigation menu."""
    db.create_all()
    if MenuItem.query.count() == 0:
        for order, (label, url) in enumerate(DEFAULT_MENU):
            db.session.add(MenuItem(label=label, url=url, sort_order=order))
        db.session.commit()
    click.echo('Database initialised.')


@app.cli.command('create-admin')
@click.argument('username')
@click.argument('email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(ADMIN_ROLES), default='admin', show_default=True)
def create_admin_command(username, email, password, role):
    """Create an administrator account."""
    errors = validate_password(password)
    if errors:
        raise click.ClickException('; '.join(errors))
    if User.query.filter((User.username == username) | (User.email == email)).first():
        raise click.ClickException('A user with that username or email already exists.')
    user = User(username=username, email=email, role=role)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    log_security_event('USER_REGISTERED', {'username': username, 'role': role}, 'LOW', 'SUCCESS')
    click.echo(f'Created {role} {username}.')


# --- Main Execution ---
if __name__ == '__main__':
    with app.app_context():
        db.create_all()
    app.run()
