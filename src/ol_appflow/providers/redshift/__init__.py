"""Redshift actions that have no native Pulumi resource."""

from .role_attachment import (
    ClusterIamRoleAttachment,
    ClusterIamRoleAttachmentProvider,
    attachment_props,
)

__all__ = [
    "ClusterIamRoleAttachment",
    "ClusterIamRoleAttachmentProvider",
    "attachment_props",
]
