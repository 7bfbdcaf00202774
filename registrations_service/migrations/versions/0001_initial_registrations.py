"""initial registrations schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.Enum('TECHNICAL', 'CULTURAL', 'SPORTS', 'WORKSHOP', 'SEMINAR', 'COMPETITION', 'OTHER', name='eventcategory'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.String(length=20), nullable=False),
        sa.Column('end_time', sa.String(length=20), nullable=True),
        sa.Column('venue', sa.String(length=255), nullable=False),
        sa.Column('max_seats', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'APPROVED', 'ONGOING', 'COMPLETED', 'CANCELLED', name='eventstatus'), nullable=False),
        sa.Column('organizer_id', sa.Integer(), nullable=False),
        sa.Column('views', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('max_seats >= 1', name='check_event_max_seats_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_events_id', 'events', ['id'])
    op.create_index('ix_events_title', 'events', ['title'])
    op.create_index('ix_events_date', 'events', ['date'])
    op.create_index('ix_events_status', 'events', ['status'])
    op.create_index('ix_events_organizer_id', 'events', ['organizer_id'])
    op.create_index('idx_event_organizer_status', 'events', ['organizer_id', 'status'])

    op.create_table(
        'registrations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('participant_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED', name='registrationstatus'), nullable=False),
        sa.Column('ics_ticket', sa.Text(), nullable=True),
        sa.Column('registered_on', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('decided_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('decided_by', sa.Integer(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id', 'participant_id', name='uq_registration_event_participant'),
    )
    op.create_index('ix_registrations_id', 'registrations', ['id'])
    op.create_index('ix_registrations_event_id', 'registrations', ['event_id'])
    op.create_index('ix_registrations_participant_id', 'registrations', ['participant_id'])
    op.create_index('ix_registrations_status', 'registrations', ['status'])
    op.create_index('idx_registration_event_status', 'registrations', ['event_id', 'status'])

    op.create_table(
        'attendance',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('participant_id', sa.Integer(), nullable=False),
        sa.Column('attended', sa.Boolean(), nullable=False),
        sa.Column('check_in_method', sa.String(length=20), nullable=False),
        sa.Column('marked_on', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('marked_by', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id', 'participant_id', name='uq_attendance_event_participant'),
    )
    op.create_index('ix_attendance_id', 'attendance', ['id'])
    op.create_index('ix_attendance_event_id', 'attendance', ['event_id'])
    op.create_index('ix_attendance_participant_id', 'attendance', ['participant_id'])

    op.create_table(
        'certificates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('participant_id', sa.Integer(), nullable=False),
        sa.Column('certificate_url', sa.String(length=500), nullable=True),
        sa.Column('status', sa.Enum('REQUESTED', 'ISSUED', name='certificatestatus'), nullable=False),
        sa.Column('fee_paid', sa.Boolean(), nullable=False),
        sa.Column('issued_on', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id', 'participant_id', name='uq_certificate_event_participant'),
    )
    op.create_index('ix_certificates_id', 'certificates', ['id'])
    op.create_index('ix_certificates_event_id', 'certificates', ['event_id'])
    op.create_index('ix_certificates_participant_id', 'certificates', ['participant_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recipient_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.Enum('EVENT', 'SYSTEM', 'ANNOUNCEMENT', 'REGISTRATION', 'BOOKMARK', 'ADMIN', name='notificationtype'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.String(length=1000), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('priority', sa.Enum('LOW', 'MEDIUM', 'HIGH', 'URGENT', name='notificationpriority'), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_recipient_id', 'notifications', ['recipient_id'])
    op.create_index('ix_notifications_expires_at', 'notifications', ['expires_at'])
    op.create_index('idx_notification_recipient_read', 'notifications', ['recipient_id', 'is_read', 'created_at'])
    op.create_index('idx_notification_recipient_type', 'notifications', ['recipient_id', 'type'])
    op.create_index('idx_notification_recipient_priority', 'notifications', ['recipient_id', 'priority', 'created_at'])


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('certificates')
    op.drop_table('attendance')
    op.drop_table('registrations')
    op.drop_table('events')
    for enum_name in (
        'notificationpriority', 'notificationtype', 'certificatestatus',
        'registrationstatus', 'eventstatus', 'eventcategory'
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
