"""Forms, submissions and submission files.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

Creates:
- forms (field schemas as JSON, submission counter with non-negative check)
- submissions
- submission_files
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), 'postgresql')


def upgrade() -> None:
    # ==========================================================================
    # forms
    # ==========================================================================
    op.create_table(
        'forms',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('fields', JSON_TYPE, nullable=False),
        sa.Column('status', sa.String(20), server_default='draft', nullable=False),
        sa.Column(
            'thank_you_message',
            sa.Text(),
            server_default='Thank you for your submission!',
            nullable=False,
        ),
        sa.Column('submission_limit', sa.Integer(), nullable=True),
        sa.Column('submissions_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('allow_duplicates', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('collect_emails', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('require_login', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('submissions_count >= 0', name='ck_forms_submissions_count_non_negative'),
    )
    op.create_index('idx_forms_status', 'forms', ['status'])
    op.create_index('idx_forms_created', 'forms', ['created_at'])

    # ==========================================================================
    # submissions
    # ==========================================================================
    op.create_table(
        'submissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('form_id', sa.Uuid(), nullable=False),
        sa.Column('data', JSON_TYPE, nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['form_id'], ['forms.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_submissions_form', 'submissions', ['form_id'])
    op.create_index('idx_submissions_form_submitted', 'submissions', ['form_id', 'submitted_at'])

    # ==========================================================================
    # submission_files
    # ==========================================================================
    op.create_table(
        'submission_files',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('submission_id', sa.Uuid(), nullable=False),
        sa.Column('position', sa.Integer(), server_default='0', nullable=False),
        sa.Column('field_name', sa.Text(), nullable=False),
        sa.Column('original_name', sa.Text(), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('size', sa.Integer(), server_default='0', nullable=False),
        sa.Column('mime_type', sa.Text(), nullable=False),
        sa.Column('storage_key', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['submission_id'], ['submissions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_submission_files_submission', 'submission_files', ['submission_id'])


def downgrade() -> None:
    op.drop_index('idx_submission_files_submission', table_name='submission_files')
    op.drop_table('submission_files')
    op.drop_index('idx_submissions_form_submitted', table_name='submissions')
    op.drop_index('idx_submissions_form', table_name='submissions')
    op.drop_table('submissions')
    op.drop_index('idx_forms_created', table_name='forms')
    op.drop_index('idx_forms_status', table_name='forms')
    op.drop_table('forms')
