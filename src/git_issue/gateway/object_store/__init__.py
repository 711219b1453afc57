"""Git object store gateway.

Import from submodules:
- git_issue.gateway.object_store.abc: GitObjectStore (ABC)
- git_issue.gateway.object_store.real: RealGitObjectStore
- git_issue.gateway.object_store.fake: FakeGitObjectStore
- git_issue.gateway.object_store.types: TreeEntry, CommitInfo
"""
