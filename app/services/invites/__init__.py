"""
Invite attribution services.

Contains modular services for invite tracking:
- snapshot_store: Per-community invite counter cache
- attribution_resolver: Snapshot diff and join attribution
- invite_directory: Invite code -> owner lookup
- attribution_log: Write-once attribution writer
- join_handler: Join bookkeeping and attribution pipeline
- personal_invites: Personal invite link issuing
- qualification: Deal-completion hook
"""
