# database/models.py
import enum

from sqlalchemy import Column, String, DateTime, ForeignKey, Text, BigInteger, Float, Enum, JSON
from sqlalchemy.dialects.postgresql import JSONB

from database.session import Base
from services.utils import utcnow, new_id

# JSONB on PostgreSQL, plain JSON everywhere else
JSONType = JSON().with_variant(JSONB, "postgresql")


class AccountStatus(str, enum.Enum):
    ACTIVE = "active"
    TOKEN_EXPIRED = "token_expired"
    DISCONNECTED = "disconnected"


class VideoStatus(str, enum.Enum):
    PENDING = "pending"
    DOWNLOADING = "downloading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class ReactionStatus(str, enum.Enum):
    PENDING_UPLOAD = "pending_upload"
    DOWNLOADING = "downloading"
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    PUBLISHED = "published"
    ERROR = "error"


class ShareStatus(str, enum.Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    FAILED = "failed"


def status_column(enum_cls, default, **kwargs):
    """Status stored as its string value; anything outside the enum is rejected on write."""
    return Column(
        Enum(
            enum_cls,
            native_enum=False,
            validate_strings=True,
            length=32,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=default,
        index=True,
        **kwargs,
    )


class SocialAccount(Base):
    __tablename__ = "social_accounts"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False, index=True)
    provider = Column(String(32), nullable=False, index=True)  # e.g., 'youtube', 'tiktok'
    provider_account_id = Column(String(255), nullable=True)
    provider_username = Column(String(255), nullable=True)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=True)
    token_expires_at = Column(DateTime(timezone=True), nullable=True)
    profile_data = Column(JSONType, nullable=True)
    scope = Column(Text, nullable=True)
    status = status_column(AccountStatus, AccountStatus.ACTIVE)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Folder(Base):
    __tablename__ = "folders"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class SourceVideo(Base):
    __tablename__ = "source_videos"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False, index=True)
    original_url = Column(Text, nullable=False)
    storage_path = Column(Text, nullable=True)  # set only together with status=completed
    public_url = Column(Text, nullable=True)
    title = Column(String(500), nullable=True)
    thumbnail_url = Column(Text, nullable=True)
    platform = Column(String(64), nullable=True)
    status = status_column(VideoStatus, VideoStatus.PENDING)
    error_message = Column(Text, nullable=True)
    job_id = Column(String(64), nullable=True)
    # Plain column, no FK: deleting a folder must not cascade into videos
    folder_id = Column(String(36), nullable=True, index=True)
    duration = Column(Float, nullable=True)
    file_format = Column(String(32), nullable=True)
    file_size = Column(BigInteger, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Reaction(Base):
    __tablename__ = "reactions"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False, index=True)
    source_video_url = Column(Text, nullable=True)
    source_video_id = Column(String(36), ForeignKey("source_videos.id", ondelete="SET NULL"), nullable=True)
    reaction_video_storage_path = Column(Text, nullable=True)
    title = Column(String(500), nullable=True)
    status = status_column(ReactionStatus, ReactionStatus.PENDING_UPLOAD)
    thumbnail_url = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    job_id = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class SocialShare(Base):
    __tablename__ = "social_shares"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False, index=True)
    reaction_id = Column(String(36), ForeignKey("reactions.id", ondelete="CASCADE"), nullable=False, index=True)
    provider = Column(String(32), nullable=False, index=True)
    social_account_id = Column(String(36), nullable=True)
    provider_post_id = Column(String(255), nullable=True)
    provider_post_url = Column(Text, nullable=True)
    status = status_column(ShareStatus, ShareStatus.PENDING)
    scheduled_for = Column(DateTime(timezone=True), nullable=True, index=True)
    published_at = Column(DateTime(timezone=True), nullable=True)
    metadata_ = Column("metadata", JSONType, nullable=True)  # title/description/privacy/tags/error
    analytics = Column(JSONType, nullable=True)
    last_analytics_sync = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
