# accounting/registry.py
"""
Account registry reads.

Resolves account codes, computes the next free code under a parent, and
assembles the chart into a forest from flat parent pointers. Writes
(create, update, delete) live in accounting.commands.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from accounting.exceptions import AccountNotFound
from accounting.models import Account


def get_account(code: str) -> Account:
    try:
        return Account.objects.get(code=code)
    except Account.DoesNotExist:
        raise AccountNotFound(f"Account '{code}' not found.", details={"code": code})


def resolve(code: str) -> int:
    """Account id for a code. Raises AccountNotFound."""
    account_id = Account.objects.filter(code=code).values_list("id", flat=True).first()
    if account_id is None:
        raise AccountNotFound(f"Account '{code}' not found.", details={"code": code})
    return account_id


def resolve_many(codes: Iterable[str]) -> Dict[str, Account]:
    """
    Map every code to its Account in one query.

    Raises AccountNotFound listing every missing code.
    """
    wanted = set(codes)
    found = {account.code: account for account in Account.objects.filter(code__in=wanted)}
    missing = sorted(wanted - set(found))
    if missing:
        raise AccountNotFound(
            f"Account(s) not found: {', '.join(missing)}.",
            details={"codes": missing},
        )
    return found


def _increment(codes: List[str]) -> Optional[str]:
    numeric = [code for code in codes if code.isdigit()]
    if not numeric:
        return None
    highest = max(numeric, key=int)
    return str(int(highest) + 1).zfill(len(highest))


def next_code(parent_code: Optional[str] = None) -> str:
    """
    Next free sibling code.

    Under a parent: highest numeric sibling + 1 (keeping its width), or
    parent_code + "01" when the parent has no numeric children.
    At the top level: highest numeric root + 1, or "1" for an empty chart.
    """
    if parent_code:
        parent = get_account(parent_code)
        siblings = list(Account.objects.filter(parent_id=parent.id).values_list("code", flat=True))
        return _increment(siblings) or f"{parent.code}01"

    roots = list(Account.objects.filter(parent__isnull=True).values_list("code", flat=True))
    return _increment(roots) or "1"


# =============================================================================
# Tree assembly
# =============================================================================

@dataclass
class AccountNode:
    account: Account
    children: List["AccountNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "code": self.account.code,
            "name": self.account.name,
            "name_ar": self.account.name_ar,
            "type": self.account.account_type,
            "nature": self.account.nature,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class AccountForest:
    roots: List[AccountNode]
    dangling: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)

    def walk(self):
        """Depth-first (node, depth) pairs."""
        stack = [(node, 0) for node in reversed(self.roots)]
        while stack:
            node, depth = stack.pop()
            yield node, depth
            stack.extend((child, depth + 1) for child in reversed(node.children))


def build_forest(accounts: Iterable[Account]) -> AccountForest:
    """
    Assemble parent -> children trees in one pass over the accounts.

    Tolerates drift instead of crashing:
    - an account whose parent_id does not resolve becomes a root and its
      code is listed in `dangling`
    - accounts caught in a parent cycle are unreachable from any root; the
      lowest code of each cycle is promoted to a root and the cycle's codes
      are listed in `cycles`
    """
    ordered = sorted(accounts, key=lambda a: a.code)
    nodes = {account.id: AccountNode(account) for account in ordered}
    roots: List[AccountNode] = []
    dangling: List[str] = []

    for account in ordered:
        node = nodes[account.id]
        if account.parent_id is None:
            roots.append(node)
        elif account.parent_id not in nodes:
            roots.append(node)
            dangling.append(account.code)
        else:
            nodes[account.parent_id].children.append(node)

    reached = set()

    def mark(start: AccountNode):
        stack = [start]
        while stack:
            node = stack.pop()
            if node.account.id in reached:
                continue
            reached.add(node.account.id)
            stack.extend(node.children)

    for root in roots:
        mark(root)

    cycles: List[List[str]] = []
    for account in ordered:
        if account.id in reached:
            continue
        # Parents of an unreached account are unreached too, so the chain
        # must loop back on itself.
        path: List[int] = []
        current = account.id
        while current not in path:
            path.append(current)
            current = nodes[current].account.parent_id
        members = [nodes[i].account for i in path[path.index(current):]]
        head = min(members, key=lambda a: a.code)
        head_node = nodes[head.id]
        nodes[head.parent_id].children.remove(head_node)
        roots.append(head_node)
        cycles.append(sorted(a.code for a in members))
        mark(head_node)

    roots.sort(key=lambda node: node.account.code)
    return AccountForest(roots=roots, dangling=dangling, cycles=cycles)


def tree() -> AccountForest:
    """The whole chart of accounts as a forest."""
    return build_forest(Account.objects.all())
