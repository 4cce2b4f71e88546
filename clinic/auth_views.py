"""
Authentication views.

Registration, e-mail/password login, the current-user endpoint and the
JWT refresh/logout pair.  Login answers with both the legacy DRF token and
a SimpleJWT access/refresh pair; clients may authenticate with either
``Token <key>`` or ``Bearer <jwt>``.
"""
from __future__ import annotations

from django.contrib.auth import authenticate
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from clinic.logging_config import get_logger
from clinic.serializers.auth import (
    DOCTOR_FIELD_MAP, PATIENT_FIELD_MAP, LoginSerializer, RefreshSerializer, RegisterSerializer, model_fields,
)
from clinic.services.accounts import ensure_demo_account, is_demo_login, issue_tokens, register_user, serialize_user
from clinic.services.audit import log_action

logger = get_logger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    is_doctor = vd['userType'] == 'doctor'
    try:
        user = register_user(
            name=vd['name'],
            email=vd['email'],
            password=vd['password'],
            user_type=vd['userType'],
            phone_number=vd['phoneNumber'],
            doctor=model_fields(vd, DOCTOR_FIELD_MAP) if is_doctor else None,
            patient=None if is_doctor else model_fields(vd, PATIENT_FIELD_MAP),
        )
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)

    log_action(user=user, action='register', object_type='user', object_id=user.id,
               detail={'userType': user.user_type, 'ip': request.META.get('REMOTE_ADDR')})
    return Response({'ok': True, **issue_tokens(user), 'user': serialize_user(user)}, status=201)

# ScopedRateThrottle reads throttle_scope from the APIView class that api_view wraps
register_view.cls.throttle_scope = 'register'


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """E-mail/password login.

    The documented demo accounts are created on their first login when
    demo accounts are enabled.
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    email = s.validated_data['email']
    password = s.validated_data['password']

    if is_demo_login(email, password):
        ensure_demo_account(email)

    user = authenticate(request, username=email, password=password)
    if not user:
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'email': email, 'ip': request.META.get('REMOTE_ADDR')})
        logger.info('login_failed', email=email)
        return Response({'ok': False, 'detail': 'Invalid credentials'}, status=401)

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})
    logger.info('login_succeeded', user_id=user.id)
    return Response({'ok': True, **issue_tokens(user), 'user': serialize_user(user)}, status=200)

login_view.cls.throttle_scope = 'login'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response({'ok': True, 'user': serialize_user(request.user)})


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    s = RefreshSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    try:
        refresh = RefreshToken(s.validated_data['refresh'])
    except TokenError as e:
        return Response({'ok': False, 'detail': str(e)}, status=401)
    return Response({'ok': True, 'jwt_access': str(refresh.access_token)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Blacklist the given refresh token (or all of the user's) and drop the legacy token."""
    refresh = request.data.get('refresh') if request.method == 'POST' else None
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
        except TokenError as e:
            return Response({'ok': False, 'detail': str(e)}, status=400)
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    return Response({'ok': True, 'blacklisted': count})
