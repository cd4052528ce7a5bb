"""Application services for release-ai.

Services implement the release logic, coordinating between the domain layer
(core/) and infrastructure (git/, platform/, the AI HTTP client).
"""
