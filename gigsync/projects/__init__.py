from .board import ProjectBoardClient, parse_project_url
from .fields import DateValue, NumberValue, SingleSelectValue, TextValue
from .graphql import GraphQLClient
from .issues import IssueTrackerClient

__all__ = [
    "ProjectBoardClient", "GraphQLClient", "IssueTrackerClient",
    "TextValue", "NumberValue", "DateValue", "SingleSelectValue",
    "parse_project_url",
]
