from typing import Any

from patchouli.domain.entities import User
from patchouli.rules.models import Rules


class PolicyEngine:
    def __init__(self, rules: Rules):
        self.rules = rules

    def check_permission(
        self,
        user: User | None,
        action: str,
        resource: Any = None,
    ) -> bool:
        """
        Check if the user is allowed to perform the action on the resource.

        Order of precedence:
        1. Public Permissions (Global)
        2. Role-Based Access Control (RBAC)
        3. Attribute-Based Access Control (ABAC)

        Ban status is not considered here; callers reject banned users
        before asking about write actions.
        """
        # 1. Public Permissions
        if action in self.rules.rbac.public_permissions:
            return True

        # If not public, we need a user
        if not user:
            return False

        # 2. RBAC
        allowed_actions = self.rules.rbac.roles.get(user.role, [])
        if "*" in allowed_actions or action in allowed_actions:
            return True

        # Check for scoped wildcards (e.g. "post:*" matches "post:approve")
        if ":" in action:
            scope = action.split(":")[0]
            if f"{scope}:*" in allowed_actions:
                return True

        # 3. ABAC
        # Only relevant if we have a resource to check against
        if resource is not None:
            for rule in self.rules.abac.post_rules:
                if action in rule.allow and self._evaluate_rule(rule.if_condition, user, resource):
                    return True

        return False

    def _evaluate_rule(self, condition: dict[str, Any], user: User, resource: Any) -> bool:
        """
        Evaluate condition predicates from rules.yaml.
        Supported predicates:
        - role_in: list[str]
        - owns_post: bool
        - status_in: list[str]
        """
        for predicate, args in condition.items():
            if predicate == "role_in":
                if user.role not in args:
                    return False

            elif predicate == "owns_post":
                if args:
                    if not hasattr(resource, "author_id"):
                        return False
                    if str(resource.author_id) != str(user.id):
                        return False

            elif predicate == "status_in":
                if getattr(resource, "status", None) not in args:
                    return False

            else:
                # Unknown predicates never grant access
                return False

        return True

    def can_moderate_users(self, user: User) -> bool:
        return self.check_permission(user, "users:ban")
