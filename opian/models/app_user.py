"""AppUser model - consultants and admins with email/password authentication."""
import enum
from sqlalchemy import Column, String, DateTime
from werkzeug.security import generate_password_hash, check_password_hash
from opian.database import Base, new_id, utcnow


class UserRole(enum.Enum):
    """User role enum."""
    ADMIN = "admin"
    CONSULTANT = "consultant"


class AppUser(Base):
    """AppUser model - platform users with local authentication."""

    __tablename__ = 'app_user'

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    profile_image_url = Column(String(500), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.CONSULTANT.value)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN.value

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'role': self.role,
        }

    def __repr__(self):
        return f"<AppUser(id={self.id}, email='{self.email}', role='{self.role}')>"
