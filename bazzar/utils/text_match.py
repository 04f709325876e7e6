"""
Fuzzy text matching for spoken/typed item names
"""
import unicodedata


def normalize_text(s: str) -> str:
    """Normalizes text: lowercase, no accents, single spaces"""
    if not s:
        return ""
    s = s.strip().lower()
    s = unicodedata.normalize('NFD', s)
    s = ''.join(ch for ch in s if unicodedata.category(ch) != 'Mn')
    return ' '.join(s.split())


def levenshtein(a: str, b: str) -> int:
    """Levenshtein distance between two strings"""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        curr = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            curr.append(min(
                curr[-1] + 1,        # insertion
                prev[j] + 1,          # deletion
                prev[j - 1] + cost,   # substitution
            ))
        prev = curr
    return prev[-1]


def singularize_token(tok: str) -> str:
    if not tok or len(tok) < 3:
        return tok
    if tok.endswith("oes") and len(tok) > 4:
        return tok[:-2]
    if tok.endswith("s") and not tok.endswith("ss") and len(tok) > 3:
        return tok[:-1]
    return tok


def similarity_score(query: str, target: str) -> int:
    """
    Similarity between query and target on a 0-100 scale.

    100 = exact match (after normalization and singularization)
    90  = query is a substring of target
    85  = strong token overlap
    75  = partial token overlap
    <75 = Levenshtein ratio
    """
    qa = normalize_text(query)
    ta = normalize_text(target)
    if not qa or not ta:
        return 0
    if qa == ta:
        return 100

    q_tokens = [singularize_token(t) for t in qa.split()]
    t_tokens = [singularize_token(t) for t in ta.split()]
    if q_tokens == t_tokens:
        return 100
    if qa in ta:
        return 90 if len(qa) >= 3 else 80

    qs = set(q_tokens)
    ts = set(t_tokens)
    if qs and ts:
        inter = len(qs & ts)
        union = len(qs | ts) or 1
        jacc = inter / union
        if jacc >= 0.66 or qs.issubset(ts) or ts.issubset(qs):
            return 85
        if jacc >= 0.4:
            return 75

    dist = levenshtein(qa, ta)
    max_len = max(len(qa), len(ta)) or 1
    return int(100 * (1 - dist / max_len))
