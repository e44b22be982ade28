"""
API 라우트 패키지

각 기능별 라우터 모듈:
- health: 헬스 체크
- accounts: 계정과목
- journal: 분개 생성/전기/역분개
- ledger: 시산표 / 계정 원장
- reports: 손익계산서 / 재무상태표
- fx: 환율
- invoices: 송장 / 결제
- events: 도메인 이벤트 감사 로그
"""
