from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import HealthMetric
from clinic.permissions import IsPatientRole
from clinic.serializers.records import MetricQuerySerializer, MetricSerializer
from clinic.services.metrics import list_metrics, record_metric, serialize_metric, series


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
def metrics(request):
    if request.method == 'GET':
        q = MetricQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        data = [serialize_metric(m) for m in list_metrics(request.user, q.validated_data.get('type'))]
        return Response({'ok': True, 'data': data})

    s = MetricSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    m = record_metric(request.user, **s.validated_data)
    return Response({'ok': True, 'metric': serialize_metric(m)}, status=201)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsPatientRole])
def metric_detail(request, metric_id: int):
    deleted, _ = HealthMetric.objects.filter(id=metric_id, patient=request.user).delete()
    if not deleted:
        return Response({'ok': False, 'detail': 'Metric not found'}, status=404)
    return Response({'ok': True})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def metric_series(request):
    try:
        points = series(request.user, request.query_params.get('type', ''))
    except ValueError as e:
        return Response({'ok': False, 'detail': str(e)}, status=400)
    return Response({'ok': True, 'data': points})
