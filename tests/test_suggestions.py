from datetime import datetime, timedelta
import pytest
from therapy_api.utils.progress_analysis import (
    analyze_metric_trends, determine_risk_level, generate_placeholder_suggestions,
    data_quality_score, requires_human_review
)


def readings(metric_type, values):
    """按时间倒序"""
    now = datetime.now()
    return [{'metric_type': metric_type, 'metric_value': value, 'measurement_date': now - timedelta(days=i)}
            for i, value in enumerate(values)]


def context(metrics=None, history='', duration=0, last_session=None):
    return {
        'recent_metrics': metrics or [],
        'patient_history': history,
        'therapy_duration': duration,
        'previous_sessions': 0,
        'last_session_date': last_session
    }


class TestSuggestionEngine:

    def test_high_anxiety_is_flagged(self):
        analysis = analyze_metric_trends(readings('anxiety', [8, 8, 3, 3]))
        assert analysis['high_anxiety_metrics'] == ['anxiety']
        assert analysis['avg_anxiety'] == 8
        assert analysis['improving_metrics'] == ['anxiety']

    def test_low_mood_and_declining(self):
        analysis = analyze_metric_trends(readings('mood', [2, 2, 6, 6]) + readings('energy', [3, 3, 3, 3]))
        assert set(analysis['low_mood_metrics']) == {'mood', 'energy'}
        assert analysis['declining_metrics'] == ['mood']
        assert analysis['stable_metrics'] == ['energy']
        assert analysis['overall_trend'] == 'declining'

    def test_single_reading_is_ignored(self):
        analysis = analyze_metric_trends(readings('anxiety', [9]))
        assert analysis['high_anxiety_metrics'] == []
        assert analysis['overall_trend'] == 'stable'

    @pytest.mark.parametrize('critical, declining, level', [
        (0, 0, 'low'), (2, 0, 'moderate'), (0, 2, 'moderate'), (3, 0, 'high'), (0, 4, 'high'),
    ])
    def test_risk_levels(self, critical, declining, level):
        analysis = {
            'high_anxiety_metrics': ['anxiety'] * critical,
            'low_mood_metrics': [],
            'declining_metrics': ['x'] * declining
        }
        assert determine_risk_level(analysis) == level

    def test_stable_patient_gets_default_suggestion(self):
        result = generate_placeholder_suggestions(context(readings('focus', [5, 5])), 'quick')
        assert [s['title'] for s in result['suggestions']] == ['Continue Current Treatment Plan']
        summary = result['analysis_summary']
        assert summary['analysis_type'] == 'quick'
        assert summary['overall_risk_level'] == 'low'
        assert summary['key_insights'] == ['Patient metrics show stable therapeutic progress']
        assert summary['recommended_focus_areas'] == ['progress_tracking']

    def test_improving_long_term_patient(self):
        metrics = readings('anxiety', [8, 8, 2, 2]) + readings('mood', [3, 3, 1, 1])
        result = generate_placeholder_suggestions(context(metrics, duration=120))
        categories = [s['category'] for s in result['suggestions']]
        assert categories == ['therapy_technique', 'lifestyle_change', 'session_frequency']
        assert 'Long-term therapy engagement indicates strong therapeutic alliance' in \
            result['analysis_summary']['key_insights']

    def test_data_quality_score(self):
        now = datetime(2024, 6, 30)
        full = context(readings('mood', [5]), history='h' * 60, duration=30,
                       last_session=now - timedelta(days=3))
        assert data_quality_score(full, now=now) == 1.0
        assert data_quality_score(context(), now=now) == 0.0
        assert data_quality_score(context(history='short', duration=8), now=now) == 0.2

    def test_human_review(self):
        calm = {'analysis_summary': {'overall_risk_level': 'low'},
                'suggestions': [{'priority': 'medium', 'confidence_score': 0.65}]}
        assert not requires_human_review(calm)

        risky = {'analysis_summary': {'overall_risk_level': 'high'}, 'suggestions': []}
        assert requires_human_review(risky)

        unsure = {'analysis_summary': {'overall_risk_level': 'low'},
                  'suggestions': [{'priority': 'low', 'confidence_score': 0.5}] * 3}
        assert requires_human_review(unsure)


class TestSuggestionRoutes:

    def test_request_writes_interaction_log(self, client, db, doctor, patient):
        client.post('/api/progress-metrics', headers=doctor['headers'], json=[
            {'patient_id': patient['patient_id'], 'metric_type': 'anxiety', 'metric_value': 9},
            {'patient_id': patient['patient_id'], 'metric_type': 'anxiety', 'metric_value': 8},
        ])

        resp = client.post('/api/suggestions/ai', headers=doctor['headers'],
                           json={'patient_id': patient['patient_id'],
                                 'context_parameters': {'therapy_goals': ['sleep']}})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body['request_id'].startswith('ai_req_')
        assert body['data']['patient_context_summary']['total_metrics'] == 2

        log = db.ai_interaction_logs.find_one({'request_id': body['request_id']})
        assert log['status'] == 'success'
        assert log['doctor_id'] == doctor['id']
        assert log['request_data']['context_parameters']['therapy_goals'] == ['sleep']
        assert log['response_data']['ai_model_version'] == 'placeholder-v1.0'

    def test_failure_is_logged_and_reported(self, client, db, doctor, patient, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError('engine down')

        monkeypatch.setattr('therapy_api.routers.suggestions.generate_placeholder_suggestions', broken)
        resp = client.post('/api/suggestions/ai', headers=doctor['headers'],
                           json={'patient_id': patient['patient_id']})
        assert resp.status_code == 500
        log = db.ai_interaction_logs.find_one({})
        assert log['status'] == 'error'
        assert log['error_details']['error_message'] == 'engine down'

    def test_non_primary_doctor_is_rejected(self, client, db, other_doctor, patient):
        resp = client.post('/api/suggestions/ai', headers=other_doctor['headers'],
                           json={'patient_id': patient['patient_id']})
        assert resp.status_code == 403
        assert db.ai_interaction_logs.count_documents({}) == 0

    def test_patient_id_required(self, client, doctor):
        resp = client.post('/api/suggestions/ai', headers=doctor['headers'], json={})
        assert resp.status_code == 400

    def test_logs_and_analytics(self, client, doctor, patient):
        for _ in range(3):
            client.post('/api/suggestions/ai', headers=doctor['headers'], json={'patient_id': patient['patient_id']})

        resp = client.get(f"/api/suggestions/logs/{patient['patient_id']}?limit=2", headers=doctor['headers'])
        data = resp.get_json()['data']
        assert len(data['logs']) == 2
        assert data['pagination'] == {'total': 3, 'limit': 2, 'offset': 0, 'has_more': True}

        resp = client.get('/api/suggestions/analytics?days=7', headers=doctor['headers'])
        data = resp.get_json()['data']
        assert data['total_interactions'] == 3
        assert data['status_breakdown'][0]['status'] == 'success'
        assert data['status_breakdown'][0]['count'] == 3

    def test_analytics_rejects_non_positive_days(self, client, doctor):
        resp = client.get('/api/suggestions/analytics?days=0', headers=doctor['headers'])
        assert resp.status_code == 400

    @pytest.mark.parametrize('days', [3651, 100000000])
    def test_analytics_rejects_oversized_window(self, client, doctor, days):
        resp = client.get(f'/api/suggestions/analytics?days={days}', headers=doctor['headers'])
        assert resp.status_code == 400
        assert resp.get_json()['message'] == 'days must be between 1 and 3650'
