def request_actor(request):
    """
    ``(id, name)`` of the staff member acting on this request.

    Authenticated users win; otherwise terminals identify themselves with the
    ``X-Staff-Id`` / ``X-Staff-Name`` headers or ``staff_id`` / ``staff_name``
    body fields. The name may be None; services resolve it through the
    identity provider.
    """
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        name = user.get_full_name() or user.get_username()
        return str(user.pk), name

    data = request.data if hasattr(request.data, "get") else {}
    staff_id = request.headers.get("X-Staff-Id") or data.get("staff_id")
    staff_name = request.headers.get("X-Staff-Name") or data.get("staff_name")
    return (str(staff_id) if staff_id else None), (staff_name or None)
