from django.http import HttpResponse
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsPatientRole
from clinic.services.audit import log_action
from clinic.services.export import build_export, render_export


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def export_health_data(request):
    """Download the patient's health data as json, csv or pdf (an HTML document)."""
    fmt = (request.query_params.get('format') or 'json').lower()
    try:
        out = render_export(build_export(request.user), fmt)
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    log_action(user=request.user, action='export', object_type='user', object_id=request.user.id,
               detail={'format': fmt})
    resp = HttpResponse(out.body, content_type=f'{out.content_type}; charset=utf-8')
    resp['Content-Disposition'] = f'attachment; filename="{out.filename}"'
    return resp
