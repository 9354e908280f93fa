"""
进度报告聚合与基于规则的占位建议引擎

传入的指标列表按时间倒序排列，与 ``ProgressMetric.find_for_patient`` 的返回一致。
"""
from datetime import datetime, timedelta
from ..models.metrics import ProgressMetric
from ..models.history import PatientHistory
from .mongo_utils import format_mongo_docs

TREND_THRESHOLD = 0.5
TREND_WINDOW = 5
REPORT_METRICS_LIMIT = 50
CONTEXT_DAYS = 30
CONTEXT_METRICS_LIMIT = 50
MAX_SUGGESTIONS = 5

HIGH_ANXIETY_THRESHOLD = 6
LOW_MOOD_THRESHOLD = 4
LOW_MOOD_TYPES = ('mood', 'energy', 'motivation')


def _mean(values):
    return sum(values) / len(values)


def _group_by_type(metrics):
    grouped = {}
    for metric in metrics:
        grouped.setdefault(metric['metric_type'], []).append(metric)
    return grouped


def calculate_trend(metrics):
    """比较最近几次测量与最早几次测量的平均值"""
    if len(metrics) < 2:
        return 'insufficient_data'

    window = min(TREND_WINDOW, len(metrics))
    recent_avg = _mean([m['metric_value'] for m in metrics[:window]])
    older_avg = _mean([m['metric_value'] for m in metrics[-window:]])

    diff = recent_avg - older_avg
    if abs(diff) < TREND_THRESHOLD:
        return 'stable'
    return 'increasing' if diff > 0 else 'decreasing'


def chart_data(metrics):
    """按指标类型生成时间序列，按时间正序排列"""
    series = {}
    for metric in metrics:
        metric_type = metric['metric_type']
        if metric_type not in series:
            series[metric_type] = {
                'label': metric_type.replace('_', ' ').upper(),
                'data': []
            }
        series[metric_type]['data'].append({
            'x': metric['measurement_date'],
            'y': metric['metric_value'],
            'severity': metric.get('severity_level'),
            'notes': metric.get('notes'),
            'assessmentMethod': metric.get('assessment_method')
        })

    for entry in series.values():
        entry['data'].sort(key=lambda point: point['x'])

    return {
        'chartData': list(series.values()),
        'format': 'time-series'
    }


def detailed_report(metrics):
    summary = {}
    for metric_type, type_metrics in _group_by_type(metrics).items():
        values = [m['metric_value'] for m in type_metrics]
        summary[metric_type] = {
            'current': values[0],
            'average': _mean(values),
            'min': min(values),
            'max': max(values),
            'trend': calculate_trend(type_metrics),
            'totalMeasurements': len(values),
            'lastMeasurement': type_metrics[0]['measurement_date']
        }

    return {
        'metrics': format_mongo_docs(metrics[:REPORT_METRICS_LIMIT]),
        'summary': summary,
        'chartData': chart_data(metrics)
    }


def gather_patient_context(patient):
    """获取患者的近期指标、病史文本和治疗时长"""
    patient_id = str(patient['_id'])
    since = datetime.now() - timedelta(days=CONTEXT_DAYS)
    metrics = ProgressMetric.find_for_patient(patient_id, {'$gte': since})[:CONTEXT_METRICS_LIMIT]
    history = PatientHistory.get(patient_id)

    started = patient.get('created_at') or datetime.now()
    session_metrics = [m for m in metrics if m.get('session_id')]

    return {
        'recent_metrics': [{
            'metric_type': m['metric_type'],
            'metric_value': m['metric_value'],
            'measurement_date': m['measurement_date'],
            'severity_level': m.get('severity_level')
        } for m in metrics],
        'patient_history': history['history_text'] if history else '',
        'therapy_duration': (datetime.now() - started).days,
        'previous_sessions': len(session_metrics),
        'last_session_date': session_metrics[0]['measurement_date'] if session_metrics else None
    }


def analyze_metric_trends(metrics):
    """
    将每种指标的值分为近期和较早两半，根据两者平均值的变化判断趋势
    """
    analysis = {
        'high_anxiety_metrics': [],
        'low_mood_metrics': [],
        'improving_metrics': [],
        'declining_metrics': [],
        'stable_metrics': [],
        'avg_anxiety': 0,
        'overall_trend': 'stable'
    }

    for metric_type, type_metrics in _group_by_type(metrics).items():
        values = [m['metric_value'] for m in type_metrics]
        if len(values) < 2:
            continue

        half = len(values) // 2
        recent_avg = _mean(values[:half])
        change = recent_avg - _mean(values[half:])

        if metric_type == 'anxiety':
            analysis['avg_anxiety'] = recent_avg
            if recent_avg > HIGH_ANXIETY_THRESHOLD:
                analysis['high_anxiety_metrics'].append(metric_type)

        if metric_type in LOW_MOOD_TYPES and recent_avg < LOW_MOOD_THRESHOLD:
            analysis['low_mood_metrics'].append(metric_type)

        if abs(change) < TREND_THRESHOLD:
            analysis['stable_metrics'].append(metric_type)
        elif change > 0:
            analysis['improving_metrics'].append(metric_type)
        else:
            analysis['declining_metrics'].append(metric_type)

    improving = len(analysis['improving_metrics'])
    declining = len(analysis['declining_metrics'])
    if improving > declining:
        analysis['overall_trend'] = 'improving'
    elif declining > improving:
        analysis['overall_trend'] = 'declining'

    return analysis


def determine_risk_level(analysis):
    critical = len(analysis['high_anxiety_metrics']) + len(analysis['low_mood_metrics'])
    declining = len(analysis['declining_metrics'])

    if critical >= 3 or declining >= 4:
        return 'high'
    if critical >= 2 or declining >= 2:
        return 'moderate'
    return 'low'


def key_insights(analysis, context):
    insights = []
    if analysis['overall_trend'] == 'improving':
        insights.append('Patient shows overall improvement in therapeutic metrics')
    if analysis['declining_metrics']:
        insights.append(
            f"Attention needed for declining metrics: {', '.join(analysis['declining_metrics'])}"
        )
    if context['therapy_duration'] > 90:
        insights.append('Long-term therapy engagement indicates strong therapeutic alliance')
    if not insights:
        insights.append('Patient metrics show stable therapeutic progress')
    return insights


def generate_placeholder_suggestions(context, analysis_type='comprehensive'):
    analysis = analyze_metric_trends(context['recent_metrics'])
    suggestions = []

    if analysis['high_anxiety_metrics']:
        suggestions.append({
            'category': 'therapy_technique',
            'title': 'Focus on Anxiety Management Techniques',
            'description': 'Patient shows elevated anxiety levels. Consider implementing breathing '
                           'exercises and cognitive restructuring techniques.',
            'priority': 'high',
            'confidence_score': 0.85,
            'rationale': f"Recent metrics show anxiety levels averaging {analysis['avg_anxiety']:.1f}/10",
            'recommended_actions': [
                'Introduce progressive muscle relaxation',
                'Practice mindfulness meditation',
                'Implement thought challenging exercises'
            ],
            'expected_outcomes': [
                'Reduced anxiety symptoms within 2-3 sessions',
                'Improved coping strategies',
                'Better stress management'
            ]
        })

    if analysis['low_mood_metrics']:
        suggestions.append({
            'category': 'lifestyle_change',
            'title': 'Behavioral Activation Strategies',
            'description': 'Low mood patterns detected. Recommend increasing pleasant activities '
                           'and social engagement.',
            'priority': 'medium',
            'confidence_score': 0.78,
            'rationale': 'Mood and energy metrics trending below average',
            'recommended_actions': [
                'Schedule 2-3 pleasant activities weekly',
                'Increase physical activity gradually',
                'Encourage social connections'
            ],
            'expected_outcomes': [
                'Improved mood stability',
                'Increased energy levels',
                'Enhanced social functioning'
            ]
        })

    if context['therapy_duration'] > 30 and analysis['overall_trend'] == 'improving':
        suggestions.append({
            'category': 'session_frequency',
            'title': 'Consider Session Frequency Adjustment',
            'description': 'Patient showing good progress. May be ready for reduced session frequency.',
            'priority': 'low',
            'confidence_score': 0.72,
            'rationale': 'Consistent improvement over past month indicates good therapeutic progress',
            'recommended_actions': [
                'Discuss reducing to bi-weekly sessions',
                'Implement self-monitoring tools',
                'Plan maintenance strategies'
            ],
            'expected_outcomes': [
                'Maintained progress with increased independence',
                'Cost-effective treatment continuation',
                'Enhanced self-efficacy'
            ]
        })

    if not suggestions:
        suggestions.append({
            'category': 'progress_tracking',
            'title': 'Continue Current Treatment Plan',
            'description': 'Patient metrics are stable. Continue with current therapeutic approach '
                           'while monitoring progress.',
            'priority': 'medium',
            'confidence_score': 0.65,
            'rationale': 'No significant concerning patterns detected in recent metrics',
            'recommended_actions': [
                'Continue current therapy techniques',
                'Monitor weekly progress metrics',
                'Adjust interventions as needed'
            ],
            'expected_outcomes': [
                'Maintained therapeutic progress',
                'Stable mental health metrics',
                'Continued patient engagement'
            ]
        })

    analysis_summary = {
        'analysis_type': analysis_type,
        'overall_risk_level': determine_risk_level(analysis),
        'trend_analysis': {
            'improving_metrics': analysis['improving_metrics'],
            'declining_metrics': analysis['declining_metrics'],
            'stable_metrics': analysis['stable_metrics']
        },
        'key_insights': key_insights(analysis, context),
        'recommended_focus_areas': [s['category'] for s in suggestions[:3]]
    }

    return {
        'suggestions': suggestions[:MAX_SUGGESTIONS],
        'analysis_summary': analysis_summary
    }


def data_quality_score(context, now=None):
    """加权计算的就绪评分，取值范围 [0, 1]"""
    now = now or datetime.now()
    score = 0.0
    if context['recent_metrics']:
        score += 0.4
    if context['patient_history'] and len(context['patient_history']) > 50:
        score += 0.3
    if context['therapy_duration'] > 7:
        score += 0.2
    last_session = context.get('last_session_date')
    if last_session and now - last_session < timedelta(days=14):
        score += 0.1
    return round(min(score, 1.0), 2)


def requires_human_review(response):
    if response['analysis_summary']['overall_risk_level'] == 'high':
        return True
    if any(s['priority'] == 'urgent' for s in response['suggestions']):
        return True
    low_confidence = [s for s in response['suggestions'] if s['confidence_score'] < 0.7]
    return len(low_confidence) > 2
