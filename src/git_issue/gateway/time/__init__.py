"""Time gateway.

Import from submodules:
- git_issue.gateway.time.abc: Time (ABC)
- git_issue.gateway.time.real: RealTime
- git_issue.gateway.time.fake: FakeTime
"""
