'''
Tutor Ledger Backend: the teacher accounting (billing ledger) service.
'''
