"""GraphQL query templates for the GitHub issues API."""

# Fields mirrored for every issue
ISSUE_FIELDS = """
fragment IssueFields on Issue {
  id
  number
  title
  body
  state
  stateReason
  createdAt
  updatedAt
  author {
    login
  }
  labels(first: 100) {
    nodes {
      name
    }
  }
  assignees(first: 100) {
    nodes {
      login
    }
  }
  milestone {
    title
  }
  issueType {
    name
  }
  projectItems(first: 20) {
    nodes {
      project {
        title
      }
    }
  }
  parent {
    number
  }
  blockedBy(first: 50) {
    nodes {
      number
    }
  }
  blocking(first: 50) {
    nodes {
      number
    }
  }
}
"""

# Query to list repository issues, one page at a time
LIST_ISSUES = (
    """
query ListIssues(
  $owner: String!
  $name: String!
  $states: [IssueState!]
  $labels: [String!]
  $since: DateTime
  $cursor: String
) {
  repository(owner: $owner, name: $name) {
    issues(
      first: 100
      after: $cursor
      states: $states
      labels: $labels
      filterBy: { since: $since }
      orderBy: { field: UPDATED_AT, direction: DESC }
    ) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        ...IssueFields
      }
    }
  }
}
"""
    + ISSUE_FIELDS
)

# Batched lookups are built per call from aliased fields, e.g.
#   i0: issue(number: 12) { ...IssueFields }
GET_ISSUES_TEMPLATE = (
    """
query GetIssues($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
%s
  }
}
"""
    + ISSUE_FIELDS
)

RESOLVE_IDS_TEMPLATE = """
query ResolveIds($owner: String!, $name: String!%s) {
  repository(owner: $owner, name: $name) {
    id
%s
  }
%s
}
"""

EDIT_ISSUES_TEMPLATE = """
mutation EditIssues(%s) {
%s
}
"""

# Mutation to create a new issue
CREATE_ISSUE = """
mutation CreateIssue($input: CreateIssueInput!) {
  createIssue(input: $input) {
    issue {
      id
      number
    }
  }
}
"""

# Mutation to close an issue
CLOSE_ISSUE = """
mutation CloseIssue($issueId: ID!, $stateReason: IssueClosedStateReason) {
  closeIssue(input: { issueId: $issueId, stateReason: $stateReason }) {
    issue {
      id
      state
    }
  }
}
"""

# Mutation to reopen an issue
REOPEN_ISSUE = """
mutation ReopenIssue($issueId: ID!) {
  reopenIssue(input: { issueId: $issueId }) {
    issue {
      id
      state
    }
  }
}
"""

# Query to get labels from a repository
GET_REPOSITORY_LABELS = """
query GetRepositoryLabels($owner: String!, $name: String!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    labels(first: 100, after: $cursor) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        name
        color
      }
    }
  }
}
"""

GET_REPOSITORY_MILESTONES = """
query GetRepositoryMilestones($owner: String!, $name: String!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    milestones(first: 100, after: $cursor, states: [OPEN, CLOSED]) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        id
        number
        title
        description
        dueOn
        state
      }
    }
  }
}
"""

GET_ISSUE_TYPES = """
query GetIssueTypes($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    issueTypes(first: 50) {
      nodes {
        id
        name
        description
      }
    }
  }
}
"""

GET_PROJECTS = """
query GetProjects($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    owner {
      ... on ProjectV2Owner {
        projectsV2(first: 50) {
          nodes {
            id
            title
          }
        }
      }
    }
  }
}
"""

# Mutation to add an issue to a project
ADD_ITEM_TO_PROJECT = """
mutation AddItemToProject($projectId: ID!, $contentId: ID!) {
  addProjectV2ItemById(
    input: {
      projectId: $projectId
      contentId: $contentId
    }
  ) {
    item {
      id
    }
  }
}
"""

GET_ISSUE_PROJECT_ITEMS = """
query GetIssueProjectItems($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    issue(number: $number) {
      projectItems(first: 50) {
        nodes {
          id
          project {
            id
          }
        }
      }
    }
  }
}
"""

DELETE_PROJECT_ITEM = """
mutation DeleteProjectItem($projectId: ID!, $itemId: ID!) {
  deleteProjectV2Item(input: { projectId: $projectId, itemId: $itemId }) {
    deletedItemId
  }
}
"""

UPDATE_ISSUE_TYPE = """
mutation UpdateIssueType($issueId: ID!, $issueTypeId: ID) {
  updateIssueIssueType(input: { issueId: $issueId, issueTypeId: $issueTypeId }) {
    issue {
      id
    }
  }
}
"""

GET_ISSUE_PARENT = """
query GetIssueParent($owner: String!, $name: String!, $number: Int!) {
  repository(owner: $owner, name: $name) {
    issue(number: $number) {
      parent {
        id
      }
    }
  }
}
"""

ADD_SUB_ISSUE = """
mutation AddSubIssue($issueId: ID!, $subIssueId: ID!) {
  addSubIssue(input: { issueId: $issueId, subIssueId: $subIssueId, replaceParent: true }) {
    issue {
      id
    }
  }
}
"""

REMOVE_SUB_ISSUE = """
mutation RemoveSubIssue($issueId: ID!, $subIssueId: ID!) {
  removeSubIssue(input: { issueId: $issueId, subIssueId: $subIssueId }) {
    issue {
      id
    }
  }
}
"""

ADD_BLOCKED_BY = """
mutation AddBlockedBy($issueId: ID!, $blockingIssueId: ID!) {
  addBlockedBy(input: { issueId: $issueId, blockingIssueId: $blockingIssueId }) {
    issue {
      id
    }
  }
}
"""

REMOVE_BLOCKED_BY = """
mutation RemoveBlockedBy($issueId: ID!, $blockingIssueId: ID!) {
  removeBlockedBy(input: { issueId: $issueId, blockingIssueId: $blockingIssueId }) {
    issue {
      id
    }
  }
}
"""

ADD_COMMENT = """
mutation AddComment($subjectId: ID!, $body: String!) {
  addComment(input: { subjectId: $subjectId, body: $body }) {
    commentEdge {
      node {
        id
      }
    }
  }
}
"""
