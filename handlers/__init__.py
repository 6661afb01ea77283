"""
handlers - Lambda 진입점

각 모듈은 handler(event, context)를 제공하며, 실제 처리는 client가 주입되는
process() 함수에 위임합니다 (테스트에서는 MagicMock 주입).

모듈:
    compliance_change   Config 규칙 준수 상태 변경 이벤트 -> 단일 리소스 점검 + SNS
    rds_event           RDS EventBridge 이벤트 -> 암호화 점검 + SNS
    scheduled_sweep     스케줄 트리거 -> 전체 파라미터 그룹 스윕 + 보고서/오류 SNS
    custom_rule         Config 커스텀 규칙 (기대값 모드) -> PutEvaluations
    engine_audit        Step Functions: 엔진별 필수 파라미터 점검 -> {subject, message}
    violation_summary   Step Functions: Config 위반 이벤트 요약 -> {subject, message}
    notify              Step Functions: {subject, message} -> SNS
"""
