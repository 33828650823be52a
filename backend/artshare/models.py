# Database models (User, Image)
from datetime import datetime, timezone
from sqlalchemy import update
from . import db

IMAGE_CATEGORIES = (
    'Painting',
    'Photography',
    'Digital Art',
    'Drawing',
    'Illustration',
    'Sculpture',
    'Mixed Media',
    'Other',
)


def _utcnow():
    return datetime.now(timezone.utc)


class ViewCounterMixin:
    """Atomic view counter shared by users and images."""

    @classmethod
    def increment_views(cls, record_id):
        """Add one view in place and return the new count, or None if no such record.

        The increment and the read happen in one UPDATE ... RETURNING, so concurrent
        callers never lose writes and each gets the count its own increment produced.
        """
        views = db.session.execute(
            update(cls)
            .where(cls.id == record_id)
            .values(views=cls.views + 1)
            .returning(cls.views)
        ).scalar_one_or_none()
        db.session.commit()
        return views


class User(ViewCounterMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    bio = db.Column(db.Text, nullable=True)
    artist_type = db.Column(db.String(80), nullable=True)
    profile_picture_link = db.Column(db.String(1024), nullable=True)
    views = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    images = db.relationship('Image', back_populates='user', lazy=True)

    __table_args__ = (
        db.CheckConstraint('views >= 0', name='ck_users_views_non_negative'),
    )

    def to_dict(self):
        # password_hash is never serialized
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'bio': self.bio,
            'artistType': self.artist_type,
            'profilePictureLink': self.profile_picture_link,
            'views': self.views,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<User {self.email}>'


class Image(ViewCounterMixin, db.Model):
    __tablename__ = 'images'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    artist_name = db.Column(db.String(120), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    price = db.Column(db.Float, nullable=False)
    description = db.Column(db.Text, nullable=False)
    category = db.Column(db.Enum(*IMAGE_CATEGORIES, name='image_category', validate_strings=True),
                         nullable=False)
    image_link = db.Column(db.String(1024), nullable=False)
    views = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    user = db.relationship('User', back_populates='images')

    __table_args__ = (
        db.CheckConstraint('price > 0', name='ck_images_price_positive'),
        db.CheckConstraint('views >= 0', name='ck_images_views_non_negative'),
    )

    def to_dict(self):
        # The owner may have vanished; report it as null instead of failing
        owner = self.user
        return {
            'id': self.id,
            'userId': self.user_id,
            'owner': {'id': owner.id, 'name': owner.name} if owner is not None else None,
            'artistName': self.artist_name,
            'name': self.name,
            'price': self.price,
            'description': self.description,
            'category': self.category,
            'imageLink': self.image_link,
            'views': self.views,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f'<Image {self.id} name={self.name}>'
