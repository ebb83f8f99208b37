import copy


def deep_merge(base, override):
    """
    Return a new dict with `override` merged into `base`.

    Nested dicts are merged key by key; any other value (lists included)
    replaces the base value. Neither argument is mutated.
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def restrict_to_known_keys(payload, reference):
    """
    Drop keys of `payload` that `reference` does not declare, recursively.

    Returns (kept, dropped) where dropped lists dotted paths of ignored keys.
    """
    kept = {}
    dropped = []
    for key, value in payload.items():
        if key not in reference:
            dropped.append(key)
            continue
        if isinstance(reference[key], dict) and isinstance(value, dict):
            sub_kept, sub_dropped = restrict_to_known_keys(value, reference[key])
            kept[key] = sub_kept
            dropped.extend(f"{key}.{path}" for path in sub_dropped)
        else:
            kept[key] = value
    return kept, dropped
